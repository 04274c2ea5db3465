import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, final

from stratus.exceptions import ExportError

logger = logging.getLogger("stratus.template")

TEMPLATE_FORMAT_VERSION = "2010-09-09"

FUNCTION_TYPE = "AWS::Lambda::Function"
PERMISSION_TYPE = "AWS::Lambda::Permission"
ROLE_TYPE = "AWS::IAM::Role"
EVENT_SOURCE_MAPPING_TYPE = "AWS::Lambda::EventSourceMapping"
CUSTOM_RESOURCE_TYPE = "AWS::CloudFormation::CustomResource"

RESOURCE_TYPES = frozenset(
    {FUNCTION_TYPE, PERMISSION_TYPE, ROLE_TYPE, EVENT_SOURCE_MAPPING_TYPE, CUSTOM_RESOURCE_TYPE}
)


def get_att(logical_id: str, attribute: str = "Arn") -> dict[str, list[str]]:
    return {"Fn::GetAtt": [logical_id, attribute]}


def ref(logical_id: str) -> dict[str, str]:
    return {"Ref": logical_id}


def join(*parts: Any, delimiter: str = "") -> dict[str, list]:
    return {"Fn::Join": [delimiter, list(parts)]}


@final
@dataclass
class ResourceNode:
    logical_id: str
    type: str
    properties: dict[str, Any] = field(default_factory=dict)
    depends_on: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.type not in RESOURCE_TYPES:
            raise ValueError(f"Unsupported resource type: {self.type}")

    def to_dict(self) -> dict[str, Any]:
        rendered: dict[str, Any] = {"Type": self.type, "Properties": self.properties}
        if self.depends_on:
            rendered["DependsOn"] = list(self.depends_on)
        return rendered


@final
class ResourceDocument:
    """Dependency-annotated resources keyed by logical id, in insertion order."""

    def __init__(self, description: str = ""):
        self.description = description
        self._nodes: dict[str, ResourceNode] = {}

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._nodes

    def __getitem__(self, logical_id: str) -> ResourceNode:
        return self._nodes[logical_id]

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def add(self, node: ResourceNode) -> str:
        """Add node under its logical id. Re-adding an identical node is a no-op."""
        existing = self._nodes.get(node.logical_id)
        if existing is not None:
            if existing != node:
                raise ExportError(
                    f"Resource {node.logical_id} is already defined with different properties"
                )
            return node.logical_id
        logger.debug("Adding resource %s (%s)", node.logical_id, node.type)
        self._nodes[node.logical_id] = node
        return node.logical_id

    def add_if_missing(self, node: ResourceNode) -> bool:
        """Add node unless its logical id is taken. Returns True when it was added."""
        if node.logical_id in self._nodes:
            return False
        self.add(node)
        return True

    def to_dict(self) -> dict[str, Any]:
        rendered: dict[str, Any] = {"AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION}
        if self.description:
            rendered["Description"] = self.description
        rendered["Resources"] = {
            logical_id: node.to_dict() for logical_id, node in self._nodes.items()
        }
        return rendered

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
