import logging
from typing import TYPE_CHECKING, Any

from stratus.aws.function.config import FunctionDefinition
from stratus.aws.iam import ensure_role
from stratus.template import FUNCTION_TYPE, ResourceDocument, ResourceNode, get_att, join, ref

if TYPE_CHECKING:
    from stratus.config import TemplateConfig

logger = logging.getLogger("stratus.aws.function")


def _named_role_arn(role_name: str) -> str | dict[str, Any]:
    if role_name.startswith("arn:"):
        return role_name
    return join("arn:aws:iam::", ref("AWS::AccountId"), f":role/{role_name}")


def _resolve_role(
    definition: FunctionDefinition, document: ResourceDocument
) -> tuple[str | dict[str, Any], list[str]]:
    """Return the role reference for the function and what it has to depend on.

    A named role adds nothing to the document. An inline definition adds its role
    only if an identical privilege set has not been exported already, and the
    function depends on the role only when it was created here.
    """
    if definition.role_name is not None:
        return _named_role_arn(definition.role_name), []

    role_id, created = ensure_role(
        document, definition.role_definition.privileges, definition.event_source_mappings
    )
    return get_att(role_id), [role_id] if created else []


def export_function(
    definition: FunctionDefinition, document: ResourceDocument, config: "TemplateConfig"
) -> str:
    """Add the function resource (and its role, when inline) to the document."""
    role, depends_on = _resolve_role(definition, document)
    options = definition.options
    logger.debug("Exporting function %s as %s", definition.handler, definition.logical_id)

    return document.add(
        ResourceNode(
            definition.logical_id,
            FUNCTION_TYPE,
            {
                "Code": config.code.to_property(),
                "Description": options.description,
                "Handler": definition.handler_format,
                "MemorySize": options.memory,
                "Role": role,
                "Runtime": config.runtime,
                "Timeout": options.timeout,
            },
            depends_on=depends_on,
        )
    )
