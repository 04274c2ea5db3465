import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, assert_never, final

from stratus.aws.configurator import ensure_configurator
from stratus.aws.constants import S3_PRINCIPAL, SNS_PRINCIPAL
from stratus.exceptions import ExportError, ValidationError
from stratus.naming import content_name, salted_name
from stratus.template import (
    CUSTOM_RESOURCE_TYPE,
    PERMISSION_TYPE,
    ResourceDocument,
    ResourceNode,
    get_att,
)

if TYPE_CHECKING:
    from stratus.config import TemplateConfig

logger = logging.getLogger("stratus.aws.grants")


def statement_id(principal: str, source_account: str | None, source_arn: str | None) -> str:
    """Identifier of one invoke grant, derived from who may invoke and from where."""
    return content_name("", principal, source_account or "", source_arn or "")


def _validate_scope(source_account: str | None, source_arn: str | None) -> None:
    if source_account is not None and not (
        source_account.isdigit() and len(source_account) == 12  # noqa: PLR2004
    ):
        raise ValidationError(f"Source account must be a 12 digit account id: {source_account}")
    if source_arn is not None and not source_arn.startswith("arn:"):
        raise ValidationError(f"Source ARN must be a valid ARN, got '{source_arn}'")


@final
@dataclass(frozen=True, kw_only=True)
class DirectPermission:
    """Allow a principal to invoke the function. Registration with the source is left
    to whoever manages the event producer."""

    principal: str
    source_account: str | None = None
    source_arn: str | None = None

    def __post_init__(self) -> None:
        if not self.principal or not self.principal.strip():
            raise ValidationError("Permission principal cannot be empty")
        _validate_scope(self.source_account, self.source_arn)


@final
@dataclass(frozen=True, kw_only=True)
class BucketNotificationPermission:
    """Allow S3 to invoke the function and register it for the bucket's events."""

    source_arn: str | None = None
    source_account: str | None = None
    events: Sequence[str] = field(default_factory=lambda: ["s3:ObjectCreated:*"])
    filter_prefix: str | None = None
    filter_suffix: str | None = None

    def __post_init__(self) -> None:
        _validate_scope(self.source_account, self.source_arn)
        if isinstance(self.events, str) or not self.events:
            raise ValidationError("Bucket notification events must be a non-empty list")
        invalid = [event for event in self.events if not event.startswith("s3:")]
        if invalid:
            raise ValidationError(f"Invalid S3 event types: {', '.join(invalid)}")

    @property
    def principal(self) -> str:
        return S3_PRINCIPAL

    @property
    def bucket_name(self) -> str:
        return (self.source_arn or "").split(":")[-1]

    @property
    def key_filter(self) -> dict[str, Any] | None:
        rules = []
        if self.filter_prefix:
            rules.append({"Name": "prefix", "Value": self.filter_prefix})
        if self.filter_suffix:
            rules.append({"Name": "suffix", "Value": self.filter_suffix})
        return {"Key": {"FilterRules": rules}} if rules else None


@final
@dataclass(frozen=True, kw_only=True)
class TopicSubscriptionPermission:
    """Allow SNS to invoke the function and subscribe it to the topic."""

    source_arn: str | None = None
    source_account: str | None = None

    def __post_init__(self) -> None:
        _validate_scope(self.source_account, self.source_arn)

    @property
    def principal(self) -> str:
        return SNS_PRINCIPAL


type PermissionGrant = DirectPermission | BucketNotificationPermission | TopicSubscriptionPermission

PERMISSION_GRANT_TYPES = (
    DirectPermission,
    BucketNotificationPermission,
    TopicSubscriptionPermission,
)


def permission_logical_id(grant: PermissionGrant, target_logical_id: str) -> str:
    return content_name(
        "LambdaPerm",
        target_logical_id,
        statement_id(grant.principal, grant.source_account, grant.source_arn),
    )


def _export_invoke_permission(
    grant: PermissionGrant, target_logical_id: str, document: ResourceDocument
) -> str:
    properties: dict[str, Any] = {
        "Action": "lambda:InvokeFunction",
        "FunctionName": get_att(target_logical_id),
        "Principal": grant.principal,
    }
    if grant.source_account:
        properties["SourceAccount"] = grant.source_account
    if grant.source_arn:
        properties["SourceArn"] = grant.source_arn

    return document.add(
        ResourceNode(permission_logical_id(grant, target_logical_id), PERMISSION_TYPE, properties)
    )


def _require_source(grant: PermissionGrant, service: str) -> str:
    arn = grant.source_arn
    if not arn:
        raise ExportError(f"{type(grant).__name__} requires a source ARN")
    arn_parts = arn.split(":")
    if len(arn_parts) < 6 or arn_parts[2] != service:  # noqa: PLR2004
        raise ExportError(f"{type(grant).__name__} expects an {service} ARN, got '{arn}'")
    return arn


def _export_direct(
    grant: DirectPermission,
    target_logical_id: str,
    document: ResourceDocument,
    config: "TemplateConfig",  # noqa: ARG001
) -> str:
    return _export_invoke_permission(grant, target_logical_id, document)


def _export_bucket_notification(
    grant: BucketNotificationPermission,
    target_logical_id: str,
    document: ResourceDocument,
    config: "TemplateConfig",
) -> str:
    source_arn = _require_source(grant, "s3")
    permission_id = _export_invoke_permission(grant, target_logical_id, document)
    configurator_id = ensure_configurator(grant.principal, source_arn, document, config)

    notification: dict[str, Any] = {"Events": list(grant.events)}
    if grant.key_filter:
        notification["Filter"] = grant.key_filter

    document.add(
        ResourceNode(
            salted_name("ConfigS3"),
            CUSTOM_RESOURCE_TYPE,
            {
                "ServiceToken": get_att(configurator_id),
                "Permission": notification,
                "LambdaTarget": get_att(target_logical_id),
                "Bucket": grant.bucket_name,
            },
            depends_on=[permission_id, configurator_id],
        )
    )
    return permission_id


def _export_topic_subscription(
    grant: TopicSubscriptionPermission,
    target_logical_id: str,
    document: ResourceDocument,
    config: "TemplateConfig",
) -> str:
    source_arn = _require_source(grant, "sns")
    permission_id = _export_invoke_permission(grant, target_logical_id, document)
    configurator_id = ensure_configurator(grant.principal, source_arn, document, config)

    subscriber_id = document.add(
        ResourceNode(
            salted_name("SubscriberSNS"),
            CUSTOM_RESOURCE_TYPE,
            {
                "ServiceToken": get_att(configurator_id),
                "Mode": "Subscribe",
                "TopicArn": source_arn,
                "LambdaTarget": get_att(target_logical_id),
            },
            depends_on=[permission_id, configurator_id],
        )
    )
    # Deleted first, so the subscription is removed while it is still known to exist.
    document.add(
        ResourceNode(
            salted_name("UnsubscriberSNS"),
            CUSTOM_RESOURCE_TYPE,
            {
                "ServiceToken": get_att(configurator_id),
                "Mode": "Unsubscribe",
                "SubscriptionArn": get_att(subscriber_id, "SubscriptionArn"),
                "TopicArn": source_arn,
                "LambdaTarget": get_att(target_logical_id),
            },
            depends_on=[subscriber_id],
        )
    )
    return permission_id


def export_permission(
    grant: PermissionGrant,
    target_logical_id: str,
    document: ResourceDocument,
    config: "TemplateConfig",
) -> str:
    """Translate one grant into resources on the document.

    Returns:
        Logical id of the Permission resource the grant produced

    Raises:
        ExportError: If the grant cannot be translated
    """
    logger.debug("Exporting %s for %s", type(grant).__name__, target_logical_id)
    match grant:
        case DirectPermission():
            return _export_direct(grant, target_logical_id, document, config)
        case BucketNotificationPermission():
            return _export_bucket_notification(grant, target_logical_id, document, config)
        case TopicSubscriptionPermission():
            return _export_topic_subscription(grant, target_logical_id, document, config)
        case _:
            assert_never(grant)


def description_info(grant: PermissionGrant) -> tuple[str, str]:
    """Label and detail used when describing a grant."""
    match grant:
        case DirectPermission():
            return "Source", grant.source_arn or ""
        case BucketNotificationPermission():
            return grant.source_arn or "", ", ".join(grant.events)
        case TopicSubscriptionPermission():
            return grant.source_arn or "", ""
        case _:
            assert_never(grant)
