import logging
from typing import TYPE_CHECKING, Any, final

from stratus.aws.api_gateway.config import Stage, _ApiRoute
from stratus.aws.api_gateway.constants import (
    APIGATEWAY_RESOURCE_ARN,
    DEFAULT_AUTHORIZATION_TYPE,
    HTTPMethodInput,
)
from stratus.aws.constants import API_GATEWAY_HANDLER, HELPER_MEMORY, HELPER_TIMEOUT
from stratus.aws.function import FunctionDefinition
from stratus.aws.iam import ensure_role
from stratus.aws.privilege import Privilege
from stratus.exceptions import ExportError, ValidationError
from stratus.naming import content_name
from stratus.template import (
    CUSTOM_RESOURCE_TYPE,
    FUNCTION_TYPE,
    ResourceDocument,
    ResourceNode,
    get_att,
)

if TYPE_CHECKING:
    from stratus.config import TemplateConfig

logger = logging.getLogger("stratus.aws.api_gateway")

_PROVISIONER_PRIVILEGES = [
    Privilege(
        actions=[
            "apigateway:GET",
            "apigateway:POST",
            "apigateway:PUT",
            "apigateway:PATCH",
            "apigateway:DELETE",
        ],
        resources=APIGATEWAY_RESOURCE_ARN,
    ),
    Privilege(
        actions=["lambda:AddPermission", "lambda:RemovePermission", "lambda:GetPolicy"],
        resources="*",
    ),
]


@final
class Api:
    """REST API whose resource tree is provisioned by a custom resource.

    Example:
        api = Api("orders-api", stage=Stage(name="v1"))
        api.add_route("/orders", list_orders)
        api.add_route("/orders/{id}", update_order, methods=["PUT", "PATCH"])
    """

    def __init__(self, name: str, description: str = "", stage: Stage | None = None):
        if not name or not name.strip():
            raise ValidationError("API name cannot be empty")
        if stage is not None and not isinstance(stage, Stage):
            raise ValidationError(f"stage must be a Stage, got {type(stage).__name__}")
        self._name = name
        self._description = description
        self._stage = stage
        self._routes: list[_ApiRoute] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def stage(self) -> Stage | None:
        return self._stage

    @property
    def routes(self) -> list[_ApiRoute]:
        return list(self._routes)

    @property
    def functions(self) -> list[FunctionDefinition]:
        seen: dict[str, FunctionDefinition] = {}
        for route in self._routes:
            seen.setdefault(route.function.handler, route.function)
        return list(seen.values())

    @property
    def logical_id(self) -> str:
        return content_name("APIGateway", self._name)

    def add_route(
        self,
        path: str,
        function: FunctionDefinition,
        methods: HTTPMethodInput = "GET",
        authorization_type: str = DEFAULT_AUTHORIZATION_TYPE,
        *,
        api_key_required: bool = False,
    ) -> None:
        route = _ApiRoute(methods, path, function, authorization_type, api_key_required)
        for existing in self._routes:
            if existing.path_parts == route.path_parts:
                overlap = set(existing.methods) & set(route.methods)
                if overlap:
                    raise ValidationError(
                        f"Route conflict: {', '.join(sorted(overlap))} {path} already defined"
                    )
        self._routes.append(route)

    def resource_tree(self) -> dict[str, Any]:
        """Nest routes by path segment, with the root node carrying no path component."""
        root: dict[str, Any] = {"Methods": {}, "Children": {}}
        for route in self._routes:
            node = root
            for part in route.path_parts:
                node = node["Children"].setdefault(
                    part, {"PathComponent": part, "Methods": {}, "Children": {}}
                )
            for method in route.methods:
                node["Methods"][method] = {
                    "HTTPMethod": method,
                    "LambdaArn": get_att(route.function.logical_id),
                    "AuthorizationType": route.authorization_type,
                    "APIKeyRequired": "true" if route.api_key_required else "false",
                }
        return root

    def to_properties(self) -> dict[str, Any]:
        properties: dict[str, Any] = {
            "Name": self._name,
            "Description": self._description,
            "Resources": self.resource_tree(),
        }
        if self._stage is not None:
            properties["Stage"] = self._stage.to_properties()
        return properties


def _ensure_provisioner(document: ResourceDocument, config: "TemplateConfig") -> str:
    logical_id = content_name("APIGatewayProvisioner", API_GATEWAY_HANDLER)
    if logical_id in document:
        return logical_id

    role_id, _ = ensure_role(document, _PROVISIONER_PRIVILEGES)
    document.add(
        ResourceNode(
            logical_id,
            FUNCTION_TYPE,
            {
                "Code": config.code.to_property(),
                "Description": "Provisions API Gateway resources and methods",
                "Handler": API_GATEWAY_HANDLER,
                "MemorySize": HELPER_MEMORY,
                "Role": get_att(role_id),
                "Runtime": config.runtime,
                "Timeout": HELPER_TIMEOUT,
            },
            depends_on=[role_id],
        )
    )
    return logical_id


def export_api(api: Api, document: ResourceDocument, config: "TemplateConfig") -> str:
    """Add the API custom resource, and the shared provisioner function, to the document."""
    if not api.routes:
        raise ExportError(f"API '{api.name}' has no routes")

    function_ids = [function.logical_id for function in api.functions]
    missing = [logical_id for logical_id in function_ids if logical_id not in document]
    if missing:
        raise ExportError(f"API '{api.name}' routes to functions that were not exported")

    provisioner_id = _ensure_provisioner(document, config)
    logger.debug("Exporting API '%s' with %d routes", api.name, len(api.routes))
    return document.add(
        ResourceNode(
            api.logical_id,
            CUSTOM_RESOURCE_TYPE,
            {"ServiceToken": get_att(provisioner_id), "API": api.to_properties()},
            depends_on=[provisioner_id, *function_ids],
        )
    )
