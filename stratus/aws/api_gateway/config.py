import re
from dataclasses import dataclass, field
from typing import final

from stratus.aws.api_gateway.constants import (
    AUTHORIZATION_TYPES,
    CACHE_CLUSTER_SIZES,
    ROUTE_MAX_LENGTH,
    HTTPMethod,
    HTTPMethodInput,
    HTTPMethodLiteral,
)
from stratus.aws.function import FunctionDefinition
from stratus.exceptions import ValidationError


@dataclass(frozen=True, kw_only=True)
class Stage:
    """Deployment stage created once the API's resources and methods exist."""

    name: str
    description: str = ""
    variables: dict[str, str] = field(default_factory=dict)
    cache_cluster_enabled: bool = False
    cache_cluster_size: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("Stage name cannot be empty")
        if not re.match(r"^[a-zA-Z0-9_-]+$", self.name):
            raise ValidationError(
                "Stage name can only contain alphanumeric characters, hyphens, and underscores"
            )
        if self.cache_cluster_size is not None:
            if self.cache_cluster_size not in CACHE_CLUSTER_SIZES:
                raise ValidationError(
                    f"Invalid cache cluster size '{self.cache_cluster_size}'. "
                    f"Must be one of: {', '.join(CACHE_CLUSTER_SIZES)}"
                )
            if not self.cache_cluster_enabled:
                raise ValidationError("cache_cluster_size requires cache_cluster_enabled=True")

    def to_properties(self) -> dict:
        properties = {
            "Name": self.name,
            "Description": self.description,
            "Variables": dict(self.variables),
            "CacheClusterEnabled": "true" if self.cache_cluster_enabled else "false",
        }
        if self.cache_cluster_size is not None:
            properties["CacheClusterSize"] = self.cache_cluster_size
        return properties


@final
@dataclass(frozen=True)
class _ApiRoute:
    method: HTTPMethodInput
    path: str
    function: FunctionDefinition
    authorization_type: str = "NONE"
    api_key_required: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.function, FunctionDefinition):
            raise ValidationError(
                f"Route target must be a FunctionDefinition, got {type(self.function).__name__}"
            )
        self._validate_path()
        self._validate_method()
        if self.authorization_type not in AUTHORIZATION_TYPES:
            raise ValidationError(
                f"Invalid authorization type '{self.authorization_type}'. "
                f"Must be one of: {', '.join(AUTHORIZATION_TYPES)}"
            )

    def _validate_path(self) -> None:
        if not self.path.startswith("/"):
            raise ValidationError("Path must start with '/'")
        if len(self.path) > ROUTE_MAX_LENGTH:
            raise ValidationError("Path too long")
        if "//" in self.path:
            raise ValidationError("Path cannot contain empty segments")
        if "{}" in self.path:
            raise ValidationError("Empty path parameters not allowed")

    def _validate_method(self) -> None:
        methods = self.method if isinstance(self.method, list) else [self.method]
        if not methods:
            raise ValidationError("Method list cannot be empty")
        for method in methods:
            if not isinstance(method, str | HTTPMethod):
                raise ValidationError(f"Invalid method type: {type(method).__name__}")
            if normalize_method(method) not in {m.value for m in HTTPMethod}:
                raise ValidationError(f"Invalid HTTP method: {method}")

    @property
    def methods(self) -> list[str]:
        if isinstance(self.method, list):
            return [normalize_method(m) for m in self.method]
        return [normalize_method(self.method)]

    @property
    def path_parts(self) -> list[str]:
        """Get the parts of the path as a list, filtering out empty segments."""
        return [p for p in self.path.split("/") if p]


def normalize_method(method: str | HTTPMethodLiteral | HTTPMethod) -> str:
    if isinstance(method, HTTPMethod):
        return method.value
    return method.upper() if method != "*" else HTTPMethod.ANY.value
