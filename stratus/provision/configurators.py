"""Runtimes that register a function with the event source it was granted access from."""

import logging
from typing import Any, final

from botocore.exceptions import BotoCoreError, ClientError

from stratus.exceptions import ProvisioningError, TeardownError, ValidationError
from stratus.naming import content_name
from stratus.provision.wire import CustomResourceRequest

logger = logging.getLogger("stratus.provision.configurators")

LAMBDA_CONFIGURATIONS = "LambdaFunctionConfigurations"


def notification_id(lambda_arn: str, bucket: str) -> str:
    return content_name("Stratus", lambda_arn, bucket)


def _require(properties: dict[str, Any], *names: str) -> None:
    missing = [name for name in names if not properties.get(name)]
    if missing:
        raise ValidationError(f"Missing resource properties: {', '.join(missing)}")


@final
class BucketNotificationConfigurator:
    """Keeps one function's entry in a bucket's notification configuration.

    Other entries of the configuration are left untouched. The entry is keyed by the
    function and bucket, so a re-run replaces it rather than adding a second one.
    """

    def __init__(self, s3: Any):
        self.s3 = s3

    def __call__(self, request: CustomResourceRequest) -> dict[str, Any]:
        return self.configure(request)

    def configure(self, request: CustomResourceRequest) -> dict[str, Any]:
        properties = request.properties or request.old_properties
        if request.is_delete:
            bucket = properties.get("Bucket")
            lambda_arn = properties.get("LambdaTarget")
            if not bucket or not lambda_arn:
                logger.warning("Nothing to clear, notification properties are incomplete")
                return {}
            try:
                self._put_entry(bucket, lambda_arn, None)
            except ProvisioningError as e:
                logger.warning("%s", TeardownError(f"Failed to clear {bucket} notification: {e}"))
            return {}

        _require(properties, "Bucket", "LambdaTarget")
        bucket = properties["Bucket"]
        lambda_arn = properties["LambdaTarget"]
        permission = properties.get("Permission") or {}
        entry: dict[str, Any] = {
            "Id": notification_id(lambda_arn, bucket),
            "LambdaFunctionArn": lambda_arn,
            "Events": list(permission.get("Events") or ["s3:ObjectCreated:*"]),
        }
        if permission.get("Filter"):
            entry["Filter"] = permission["Filter"]
        self._put_entry(bucket, lambda_arn, entry)
        return {}

    def _put_entry(self, bucket: str, lambda_arn: str, entry: dict[str, Any] | None) -> None:
        entry_id = notification_id(lambda_arn, bucket)
        try:
            configuration = self.s3.get_bucket_notification_configuration(Bucket=bucket)
        except (ClientError, BotoCoreError) as e:
            raise ProvisioningError("get_bucket_notification_configuration", str(e)) from e
        configuration.pop("ResponseMetadata", None)

        entries = [
            existing
            for existing in configuration.get(LAMBDA_CONFIGURATIONS, [])
            if existing.get("Id") != entry_id
        ]
        if entry is not None:
            entries.append(entry)
        if entries:
            configuration[LAMBDA_CONFIGURATIONS] = entries
        else:
            configuration.pop(LAMBDA_CONFIGURATIONS, None)

        logger.info("Updating notification configuration of %s", bucket)
        try:
            self.s3.put_bucket_notification_configuration(
                Bucket=bucket, NotificationConfiguration=configuration
            )
        except (ClientError, BotoCoreError) as e:
            raise ProvisioningError("put_bucket_notification_configuration", str(e)) from e


@final
class TopicSubscriptionConfigurator:
    """Subscribes a function to a topic, and removes that subscription again.

    The two directions are separate resources: the "Subscribe" one creates the
    subscription and reports its ARN, the "Unsubscribe" one removes it when deleted.
    """

    def __init__(self, sns: Any):
        self.sns = sns

    def __call__(self, request: CustomResourceRequest) -> dict[str, Any]:
        return self.configure(request)

    def configure(self, request: CustomResourceRequest) -> dict[str, Any]:
        properties = request.properties or request.old_properties
        mode = properties.get("Mode")
        match mode:
            case "Subscribe":
                return self._subscribe(request, properties)
            case "Unsubscribe":
                return self._unsubscribe(request, properties)
            case _ if request.is_delete:
                logger.warning("Nothing to remove for subscription mode %r", mode)
                return {}
            case _:
                raise ValidationError(f"Unknown subscription mode: {mode!r}")

    def _subscribe(
        self, request: CustomResourceRequest, properties: dict[str, Any]
    ) -> dict[str, Any]:
        if request.is_delete:
            return {}
        _require(properties, "TopicArn", "LambdaTarget")
        try:
            response = self.sns.subscribe(
                TopicArn=properties["TopicArn"],
                Protocol="lambda",
                Endpoint=properties["LambdaTarget"],
                ReturnSubscriptionArn=True,
            )
        except (ClientError, BotoCoreError) as e:
            raise ProvisioningError("subscribe", str(e)) from e
        logger.info("Subscribed %s to %s", properties["LambdaTarget"], properties["TopicArn"])
        return {"SubscriptionArn": response["SubscriptionArn"]}

    def _unsubscribe(
        self, request: CustomResourceRequest, properties: dict[str, Any]
    ) -> dict[str, Any]:
        if not request.is_delete:
            return {}
        subscription_arn = properties.get("SubscriptionArn")
        if not subscription_arn:
            logger.warning("No subscription to remove")
            return {}
        try:
            self.sns.unsubscribe(SubscriptionArn=subscription_arn)
            logger.info("Unsubscribed %s", subscription_arn)
        except (ClientError, BotoCoreError) as e:
            logger.warning("%s", TeardownError(f"Failed to unsubscribe {subscription_arn}: {e}"))
        return {}
