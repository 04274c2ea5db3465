import struct
from dataclasses import dataclass
from typing import Literal

from stratus.exceptions import ExportError, ValidationError
from stratus.naming import content_name
from stratus.template import EVENT_SOURCE_MAPPING_TYPE, ResourceDocument, ResourceNode, get_att

type StartingPosition = Literal["TRIM_HORIZON", "LATEST", "AT_TIMESTAMP"]

MAX_BATCH_SIZE = 10000


@dataclass(frozen=True, kw_only=True)
class EventSourceMapping:
    """Pull-based event source (stream or queue) polled by the function."""

    event_source_arn: str
    starting_position: StartingPosition | None = "TRIM_HORIZON"
    batch_size: int = 100
    enabled: bool | None = None

    def __post_init__(self) -> None:
        if not self.event_source_arn or not self.event_source_arn.startswith("arn:"):
            raise ValidationError(
                f"Event source ARN must be a valid ARN, got '{self.event_source_arn}'"
            )
        if not isinstance(self.batch_size, int) or not 0 < self.batch_size <= MAX_BATCH_SIZE:
            raise ValidationError(
                f"Batch size must be between 1 and {MAX_BATCH_SIZE}, got {self.batch_size}"
            )

    @property
    def service(self) -> str | None:
        """Service namespace of the source ARN, e.g. 'dynamodb' or 'kinesis'."""
        arn_parts = self.event_source_arn.split(":")
        return arn_parts[2] if len(arn_parts) > 2 else None  # noqa: PLR2004

    @property
    def logical_id(self) -> str:
        return content_name(
            "LambdaES",
            self.event_source_arn,
            struct.pack("<i", self.batch_size),
            self.starting_position or "",
        )


def export_event_source_mapping(
    mapping: EventSourceMapping, target_logical_id: str, document: ResourceDocument
) -> str:
    if target_logical_id not in document:
        raise ExportError(
            f"Cannot map {mapping.event_source_arn}: function {target_logical_id} not exported"
        )
    logical_id = mapping.logical_id
    if logical_id in document:
        mapped_function = document[logical_id].properties["FunctionName"]
        if mapped_function != get_att(target_logical_id):
            raise ExportError(
                f"Event source {mapping.event_source_arn} is already mapped to "
                f"{mapped_function['Fn::GetAtt'][0]} with the same batch size and position"
            )

    properties = {
        "EventSourceArn": mapping.event_source_arn,
        "FunctionName": get_att(target_logical_id),
        "BatchSize": mapping.batch_size,
    }
    if mapping.starting_position is not None:
        properties["StartingPosition"] = mapping.starting_position
    if mapping.enabled is not None:
        properties["Enabled"] = mapping.enabled

    return document.add(ResourceNode(logical_id, EVENT_SOURCE_MAPPING_TYPE, properties))
