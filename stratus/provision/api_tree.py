from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, final

from stratus.exceptions import ValidationError


def _as_bool(value: Any) -> bool:
    # CloudFormation delivers every scalar property as a string
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true"


@final
@dataclass(frozen=True)
class MethodDefinition:
    http_method: str
    lambda_arn: str
    authorization_type: str = "NONE"
    api_key_required: bool = False

    @classmethod
    def from_properties(cls, method: str, properties: dict[str, Any]) -> "MethodDefinition":
        lambda_arn = properties.get("LambdaArn")
        if not lambda_arn:
            raise ValidationError(f"Method {method} has no LambdaArn")
        return cls(
            http_method=properties.get("HTTPMethod") or method,
            lambda_arn=lambda_arn,
            authorization_type=properties.get("AuthorizationType") or "NONE",
            api_key_required=_as_bool(properties.get("APIKeyRequired", False)),
        )


@final
@dataclass(frozen=True)
class ResourceTreeNode:
    """One path segment of the API. The root has no path component."""

    path_component: str | None
    methods: dict[str, MethodDefinition] = field(default_factory=dict)
    children: list["ResourceTreeNode"] = field(default_factory=list)

    @classmethod
    def from_properties(
        cls, properties: dict[str, Any], *, is_root: bool = True
    ) -> "ResourceTreeNode":
        path_component = properties.get("PathComponent")
        if not is_root and not path_component:
            raise ValidationError("Every non-root API resource needs a PathComponent")
        methods = {
            name: MethodDefinition.from_properties(name, method)
            for name, method in (properties.get("Methods") or {}).items()
        }
        children = [
            cls.from_properties(child, is_root=False)
            for child in (properties.get("Children") or {}).values()
        ]
        return cls(None if is_root else path_component, methods, children)

    def walk(self) -> Iterator["ResourceTreeNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


def child_path(parent_path: str, path_component: str) -> str:
    return f"{parent_path.rstrip('/')}/{path_component}"


@final
@dataclass(frozen=True)
class StageDefinition:
    name: str
    description: str = ""
    variables: dict[str, str] = field(default_factory=dict)
    cache_cluster_enabled: bool = False
    cache_cluster_size: str | None = None

    @classmethod
    def from_properties(cls, properties: dict[str, Any]) -> "StageDefinition | None":
        if not properties.get("Name"):
            return None
        return cls(
            name=properties["Name"],
            description=properties.get("Description") or "",
            variables=properties.get("Variables") or {},
            cache_cluster_enabled=_as_bool(properties.get("CacheClusterEnabled", False)),
            cache_cluster_size=properties.get("CacheClusterSize") or None,
        )


def api_name(properties: dict[str, Any]) -> str | None:
    """Name of the API in the resource properties, read without parsing its tree."""
    api = properties.get("API")
    if not isinstance(api, dict) or not api.get("Name"):
        return None
    return api["Name"]


@final
@dataclass(frozen=True)
class ApiDefinition:
    name: str
    description: str = ""
    clone_from: str | None = None
    resources: ResourceTreeNode = field(default_factory=lambda: ResourceTreeNode(None))
    stage: StageDefinition | None = None

    @classmethod
    def from_properties(cls, properties: dict[str, Any]) -> "ApiDefinition":
        if api_name(properties) is None:
            raise ValidationError("API properties must include a Name")
        api = properties["API"]
        return cls(
            name=api["Name"],
            description=api.get("Description") or "",
            clone_from=api.get("CloneFrom") or None,
            resources=ResourceTreeNode.from_properties(api.get("Resources") or {}),
            stage=StageDefinition.from_properties(api.get("Stage") or {}),
        )

    def lambda_arns(self) -> list[str]:
        """Every function the API invokes, in tree order, without repeats."""
        arns: dict[str, None] = {}
        for node in self.resources.walk():
            for method in node.methods.values():
                arns.setdefault(method.lambda_arn)
        return list(arns)
