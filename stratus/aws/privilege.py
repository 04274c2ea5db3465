from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from stratus.exceptions import ValidationError


@dataclass(frozen=True)
class Privilege:
    """One Allow statement of an inline role policy."""

    actions: Sequence[str]
    resources: str | Sequence[str]

    def __post_init__(self) -> None:
        if isinstance(self.actions, str) or not self.actions:
            raise ValidationError("Privilege actions must be a non-empty list of strings")
        if not self.resources:
            raise ValidationError("Privilege resources cannot be empty")

    def to_statement(self) -> dict[str, Any]:
        resources = self.resources
        if not isinstance(resources, str):
            resources = resources[0] if len(resources) == 1 else list(resources)
        return {"Effect": "Allow", "Action": list(self.actions), "Resource": resources}
