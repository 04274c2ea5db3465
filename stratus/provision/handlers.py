"""Lambda entry points of the helper functions the assembler emits.

Clients are created per invocation from the execution role, inside the provisioner,
so that a failure to build them is still reported back through the response URL.
"""

import logging
from typing import Any

from stratus.config import AwsConfig
from stratus.provision.api_gateway import ApiGatewayProvisioner
from stratus.provision.configurators import (
    BucketNotificationConfigurator,
    TopicSubscriptionConfigurator,
)
from stratus.provision.wire import CustomResourceRequest, CustomResourceResponse, handle_request

logging.getLogger("stratus").setLevel(logging.INFO)


def api_gateway_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    def provision(request: CustomResourceRequest) -> dict[str, Any]:
        session = AwsConfig().session()
        provisioner = ApiGatewayProvisioner(
            session.client("apigateway"), session.client("lambda"), session.region_name
        )
        return provisioner(request)

    return _summary(handle_request(event, context, provision))


def bucket_notification_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    def configure(request: CustomResourceRequest) -> dict[str, Any]:
        return BucketNotificationConfigurator(AwsConfig().session().client("s3"))(request)

    return _summary(handle_request(event, context, configure))


def topic_subscription_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    def configure(request: CustomResourceRequest) -> dict[str, Any]:
        return TopicSubscriptionConfigurator(AwsConfig().session().client("sns"))(request)

    return _summary(handle_request(event, context, configure))


def _summary(response: CustomResourceResponse) -> dict[str, Any]:
    return {"Status": response.status, "PhysicalResourceId": response.physical_resource_id}
