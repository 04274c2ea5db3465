from collections import Counter
from dataclasses import dataclass, field
from typing import TypedDict

from stratus.aws.event_source import EventSourceMapping
from stratus.aws.function.constants import (
    DEFAULT_DESCRIPTION,
    DEFAULT_MEMORY,
    DEFAULT_TIMEOUT,
    MAX_MEMORY,
    MAX_TIMEOUT,
)
from stratus.aws.grants import PERMISSION_GRANT_TYPES, PermissionGrant
from stratus.aws.privilege import Privilege
from stratus.exceptions import ValidationError
from stratus.naming import content_name


class FunctionOptionsDict(TypedDict, total=False):
    description: str
    memory: int
    timeout: int


@dataclass(frozen=True, kw_only=True)
class FunctionOptions:
    """Execution limits for a function. Non-positive values fall back to the defaults."""

    description: str = DEFAULT_DESCRIPTION
    memory: int = DEFAULT_MEMORY
    timeout: int = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not isinstance(self.memory, int) or not isinstance(self.timeout, int):
            raise ValidationError("Memory and timeout must be integers")
        if self.memory <= 0:
            object.__setattr__(self, "memory", DEFAULT_MEMORY)
        if self.timeout <= 0:
            object.__setattr__(self, "timeout", DEFAULT_TIMEOUT)
        if self.memory > MAX_MEMORY:
            raise ValidationError(f"Memory cannot exceed {MAX_MEMORY} MB, got {self.memory}")
        if self.timeout > MAX_TIMEOUT:
            raise ValidationError(
                f"Timeout cannot exceed {MAX_TIMEOUT} seconds, got {self.timeout}"
            )


@dataclass(frozen=True)
class RoleDefinition:
    """Inline role privileges. Log writing and event source privileges are added
    automatically and need not be listed."""

    privileges: list[Privilege] = field(default_factory=list)

    def __post_init__(self) -> None:
        for index, privilege in enumerate(self.privileges):
            if not isinstance(privilege, Privilege):
                raise ValidationError(
                    f"Item at index {index} in 'privileges' is not a Privilege instance. "
                    f"Got {type(privilege).__name__}."
                )


@dataclass(frozen=True, kw_only=True)
class FunctionDefinition:
    """Everything needed to provision one function.

    Exactly one of `role_name` (an existing role name or ARN) and `role_definition`
    must be supplied.

    Examples:
        FunctionDefinition(
            handler="functions/orders.process",
            role_definition=RoleDefinition([Privilege(["s3:GetObject"], "arn:aws:s3:::b/*")]),
            options={"memory": 256, "timeout": 30},
            permissions=[TopicSubscriptionPermission(source_arn=topic_arn)],
        )
    """

    handler: str
    role_name: str | None = None
    role_definition: RoleDefinition | None = None
    options: FunctionOptions | FunctionOptionsDict | None = None
    permissions: list[PermissionGrant] = field(default_factory=list)
    event_source_mappings: list[EventSourceMapping] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._validate_handler()
        self._validate_role()
        object.__setattr__(self, "options", self._parse_options(self.options))
        self._validate_permissions()
        self._validate_event_source_mappings()

    def _validate_handler(self) -> None:
        if not isinstance(self.handler, str) or "." not in self.handler:
            raise ValidationError(
                "Handler must contain a dot separator between file path and function name"
            )
        file_path, function_name = self.handler.rsplit(".", 1)
        if not file_path or not function_name:
            raise ValidationError("Both file path and function name must be non-empty")
        if "." in file_path:
            raise ValidationError("File path part should not contain dots")

    def _validate_role(self) -> None:
        if self.role_name is not None and self.role_definition is not None:
            raise ValidationError(
                f"Function '{self.handler}': cannot specify both 'role_name' and "
                "'role_definition'"
            )
        if self.role_name is None and self.role_definition is None:
            raise ValidationError(
                f"Function '{self.handler}': either 'role_name' or 'role_definition' is required"
            )
        if self.role_name is not None and not self.role_name.strip():
            raise ValidationError(f"Function '{self.handler}': role name cannot be empty")
        if self.role_definition is not None and not isinstance(
            self.role_definition, RoleDefinition
        ):
            raise ValidationError(
                f"role_definition must be a RoleDefinition, "
                f"got {type(self.role_definition).__name__}"
            )

    @staticmethod
    def _parse_options(options: FunctionOptions | FunctionOptionsDict | None) -> FunctionOptions:
        if options is None:
            return FunctionOptions()
        if isinstance(options, FunctionOptions):
            return options
        if isinstance(options, dict):
            try:
                return FunctionOptions(**options)
            except TypeError as e:
                raise ValidationError(f"Invalid function options: {e}") from e
        raise ValidationError(
            f"Invalid options type: expected FunctionOptions or dict, "
            f"got {type(options).__name__}"
        )

    def _validate_permissions(self) -> None:
        for index, grant in enumerate(self.permissions):
            if not isinstance(grant, PERMISSION_GRANT_TYPES):
                raise ValidationError(
                    f"Item at index {index} in 'permissions' is not a permission grant. "
                    f"Got {type(grant).__name__}."
                )

    def _validate_event_source_mappings(self) -> None:
        for index, mapping in enumerate(self.event_source_mappings):
            if not isinstance(mapping, EventSourceMapping):
                raise ValidationError(
                    f"Item at index {index} in 'event_source_mappings' is not an "
                    f"EventSourceMapping. Got {type(mapping).__name__}."
                )
        counts = Counter(mapping.logical_id for mapping in self.event_source_mappings)
        duplicates = [
            mapping.event_source_arn
            for mapping in self.event_source_mappings
            if counts[mapping.logical_id] > 1
        ]
        if duplicates:
            raise ValidationError(
                f"Duplicate event source mappings: {', '.join(sorted(set(duplicates)))}"
            )

    @property
    def logical_id(self) -> str:
        """Stable logical id, derived from the handler."""
        return content_name("Lambda", self.handler)

    @property
    def handler_format(self) -> str:
        """Handler in Lambda's module path format.

        For "functions/orders.process" → "functions.orders.process"
        """
        return self.handler.replace("/", ".")
