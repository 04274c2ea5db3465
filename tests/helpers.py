from typing import Any

from botocore.exceptions import ClientError

from stratus.aws.function import FunctionDefinition, RoleDefinition
from stratus.aws.privilege import Privilege
from stratus.provision.wire import CustomResourceRequest
from stratus.template import ResourceDocument, ResourceNode

ACCOUNT_ID = "123456789012"
REGION = "us-east-1"
BUCKET_ARN = "arn:aws:s3:::uploads-bucket"
TOPIC_ARN = f"arn:aws:sns:{REGION}:{ACCOUNT_ID}:orders-topic"
STREAM_ARN = f"arn:aws:dynamodb:{REGION}:{ACCOUNT_ID}:table/orders/stream/2024-01-01T00:00:00.000"
QUEUE_ARN = f"arn:aws:sqs:{REGION}:{ACCOUNT_ID}:orders-queue"
LAMBDA_ARN = f"arn:aws:lambda:{REGION}:{ACCOUNT_ID}:function:orders"
RESPONSE_URL = "https://cloudformation-custom-resource-response.example.com/signed"


def read_privilege(resource: str = "arn:aws:s3:::data/*") -> Privilege:
    return Privilege(actions=["s3:GetObject"], resources=resource)


def of_type(document: ResourceDocument, resource_type: str) -> list[ResourceNode]:
    return [node for node in document if node.type == resource_type]


def make_function(handler: str = "functions/orders.process", **kwargs: Any) -> FunctionDefinition:
    if "role_name" not in kwargs:
        kwargs.setdefault("role_definition", RoleDefinition([read_privilege()]))
    return FunctionDefinition(handler=handler, **kwargs)


def make_event(
    request_type: str = "Create",
    properties: dict[str, Any] | None = None,
    old_properties: dict[str, Any] | None = None,
) -> dict[str, Any]:
    event: dict[str, Any] = {
        "RequestType": request_type,
        "ResponseURL": RESPONSE_URL,
        "StackId": f"arn:aws:cloudformation:{REGION}:{ACCOUNT_ID}:stack/orders/guid",
        "RequestId": "request-1",
        "LogicalResourceId": "Resource1",
        "ResourceProperties": properties or {},
    }
    if old_properties is not None:
        event["OldResourceProperties"] = old_properties
    return event


def make_request(
    request_type: str = "Create",
    properties: dict[str, Any] | None = None,
    old_properties: dict[str, Any] | None = None,
) -> CustomResourceRequest:
    return CustomResourceRequest.from_event(make_event(request_type, properties, old_properties))


def client_error(code: str, message: str = "", operation: str = "Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)
