"""Request/response contract between CloudFormation and the custom resource runtimes.

Every request gets exactly one response, PUT to the pre-signed ResponseURL. The
response is never returned to the caller directly, and a failed delivery is
logged rather than retried.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Final, Literal, final

import requests

from stratus.exceptions import ValidationError

logger = logging.getLogger("stratus.provision.wire")

SUCCESS: Final = "SUCCESS"
FAILED: Final = "FAILED"
RESPONSE_TIMEOUT = 30

type RequestType = Literal["Create", "Update", "Delete"]
type Status = Literal["SUCCESS", "FAILED"]


@final
@dataclass(frozen=True)
class CustomResourceRequest:
    request_type: str
    response_url: str | None
    stack_id: str | None
    request_id: str | None
    logical_resource_id: str | None
    resource_type: str | None = None
    physical_resource_id: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    old_properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> "CustomResourceRequest":
        properties = event.get("ResourceProperties") or {}
        old_properties = event.get("OldResourceProperties") or {}
        if not isinstance(properties, dict) or not isinstance(old_properties, dict):
            raise ValidationError("Resource properties must be a mapping")
        return cls(
            request_type=event.get("RequestType", ""),
            response_url=event.get("ResponseURL"),
            stack_id=event.get("StackId"),
            request_id=event.get("RequestId"),
            logical_resource_id=event.get("LogicalResourceId"),
            resource_type=event.get("ResourceType"),
            physical_resource_id=event.get("PhysicalResourceId"),
            properties=properties,
            old_properties=old_properties,
        )

    @property
    def is_delete(self) -> bool:
        return self.request_type == "Delete"


@final
@dataclass(frozen=True)
class CustomResourceResponse:
    status: Status
    physical_resource_id: str
    stack_id: str | None
    request_id: str | None
    logical_resource_id: str | None
    reason: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_body(self) -> str:
        body = {
            "Status": self.status,
            "Reason": self.reason or "See the details in CloudWatch Log Stream",
            "PhysicalResourceId": self.physical_resource_id,
            "StackId": self.stack_id,
            "RequestId": self.request_id,
            "LogicalResourceId": self.logical_resource_id,
            "Data": self.data,
        }
        return json.dumps(body)


type Provisioner = Callable[[CustomResourceRequest], dict[str, Any] | None]


def send_response(response_url: str | None, response: CustomResourceResponse) -> bool:
    """PUT the response to the pre-signed URL. Returns whether delivery succeeded."""
    if not response_url:
        logger.error("No ResponseURL in request, cannot deliver %s response", response.status)
        return False

    body = response.to_body()
    logger.info("Delivering %s response for %s", response.status, response.logical_resource_id)
    try:
        result = requests.put(
            response_url,
            data=body,
            headers={"content-type": "", "content-length": str(len(body))},
            timeout=RESPONSE_TIMEOUT,
        )
        result.raise_for_status()
    except requests.exceptions.RequestException:
        logger.exception("Failed to deliver response to %s", response_url)
        return False
    return True


def _physical_resource_id(request: CustomResourceRequest, context: Any) -> str:
    return (
        request.physical_resource_id
        or getattr(context, "log_stream_name", None)
        or request.logical_resource_id
        or "stratus-custom-resource"
    )


def _correlation_only(event: Any) -> CustomResourceRequest:
    """Request carrying only the ids needed to answer an event that could not be parsed."""
    fields = event if isinstance(event, dict) else {}
    return CustomResourceRequest(
        request_type=str(fields.get("RequestType", "")),
        response_url=fields.get("ResponseURL"),
        stack_id=fields.get("StackId"),
        request_id=fields.get("RequestId"),
        logical_resource_id=fields.get("LogicalResourceId"),
        physical_resource_id=fields.get("PhysicalResourceId"),
    )


def handle_request(
    event: dict[str, Any], context: Any, provisioner: Provisioner
) -> CustomResourceResponse:
    """Run the provisioner for one request and deliver its single response.

    A Delete whose event cannot be parsed is answered with SUCCESS, so a teardown
    is never blocked by it.
    """
    request: CustomResourceRequest | None = None
    status: Status = SUCCESS
    reason: str | None = None
    data: dict[str, Any] = {}
    try:
        request = CustomResourceRequest.from_event(event)
        logger.info("Handling %s for %s", request.request_type, request.logical_resource_id)
        data = provisioner(request) or {}
        json.dumps(data)
    except Exception as e:  # noqa: BLE001
        data = {}
        if request is None:
            request = _correlation_only(event)
            if request.is_delete:
                logger.warning("Ignoring unreadable Delete request: %s", e)
            else:
                logger.exception("Cannot read %s request", request.request_type)
                status, reason = FAILED, str(e) or type(e).__name__
        else:
            logger.exception("%s of %s failed", request.request_type, request.logical_resource_id)
            status, reason = FAILED, str(e) or type(e).__name__

    response = CustomResourceResponse(
        status=status,
        physical_resource_id=_physical_resource_id(request, context),
        stack_id=request.stack_id,
        request_id=request.request_id,
        logical_resource_id=request.logical_resource_id,
        reason=reason,
        data=data,
    )
    send_response(request.response_url, response)
    return response
