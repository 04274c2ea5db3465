import logging
from typing import TYPE_CHECKING

from stratus.aws.constants import (
    BUCKET_NOTIFICATION_HANDLER,
    HELPER_MEMORY,
    HELPER_TIMEOUT,
    S3_PRINCIPAL,
    SNS_PRINCIPAL,
    TOPIC_SUBSCRIPTION_HANDLER,
)
from stratus.aws.iam import ensure_role
from stratus.aws.privilege import Privilege
from stratus.exceptions import ExportError
from stratus.naming import content_name
from stratus.template import FUNCTION_TYPE, ResourceDocument, ResourceNode, get_att

if TYPE_CHECKING:
    from stratus.config import TemplateConfig

logger = logging.getLogger("stratus.aws.configurator")


def _configurator_privileges(principal: str, source_arn: str) -> list[Privilege]:
    if principal == S3_PRINCIPAL:
        return [
            Privilege(
                actions=["s3:GetBucketNotification", "s3:PutBucketNotification"],
                resources=source_arn,
            )
        ]
    if principal == SNS_PRINCIPAL:
        return [
            Privilege(
                actions=["sns:Subscribe", "sns:Unsubscribe", "sns:ListSubscriptionsByTopic"],
                resources=[source_arn, f"{source_arn}:*"],
            )
        ]
    raise ExportError(f"No configurator is available for principal '{principal}'")


_HANDLERS = {S3_PRINCIPAL: BUCKET_NOTIFICATION_HANDLER, SNS_PRINCIPAL: TOPIC_SUBSCRIPTION_HANDLER}


def configurator_logical_id(principal: str, source_arn: str) -> str:
    return content_name("Configurator", principal, source_arn)


def ensure_configurator(
    principal: str, source_arn: str, document: ResourceDocument, config: "TemplateConfig"
) -> str:
    """Make sure the helper function that registers push sources for this source exists.

    Every grant that shares the same principal and source ARN resolves to the same
    configurator.
    """
    logical_id = configurator_logical_id(principal, source_arn)
    if logical_id in document:
        logger.debug("Reusing configurator %s for %s", logical_id, source_arn)
        return logical_id

    role_id, _ = ensure_role(document, _configurator_privileges(principal, source_arn))
    document.add(
        ResourceNode(
            logical_id,
            FUNCTION_TYPE,
            {
                "Code": config.code.to_property(),
                "Description": f"Configures {principal} event delivery for {source_arn}",
                "Handler": _HANDLERS[principal],
                "MemorySize": HELPER_MEMORY,
                "Role": get_att(role_id),
                "Runtime": config.runtime,
                "Timeout": HELPER_TIMEOUT,
            },
            depends_on=[role_id],
        )
    )
    return logical_id
