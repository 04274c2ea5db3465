import copy
import json
import logging
from collections.abc import Sequence
from typing import Any

from stratus.aws.constants import (
    ASSUME_ROLE_POLICY,
    EVENT_SOURCE_STATEMENTS,
    LOGS_STATEMENT,
    POLICY_NAME,
    POLICY_VERSION,
)
from stratus.aws.event_source import EventSourceMapping
from stratus.aws.privilege import Privilege
from stratus.naming import content_name
from stratus.template import ROLE_TYPE, ResourceDocument, ResourceNode

logger = logging.getLogger("stratus.aws.iam")


def synthesize_statements(
    privileges: Sequence[Privilege], event_source_mappings: Sequence[EventSourceMapping] = ()
) -> list[dict[str, Any]]:
    """Build the policy statements for an inline role.

    The log-writing statement always comes first, followed by the explicit
    privileges in declaration order and then one statement per event source whose
    service has a known template, scoped to that source's exact ARN.
    """
    statements = [copy.deepcopy(LOGS_STATEMENT)]
    statements.extend(privilege.to_statement() for privilege in privileges)

    for mapping in event_source_mappings:
        service = mapping.service
        template = EVENT_SOURCE_STATEMENTS.get(service) if service else None
        if template is None:
            logger.debug("No IAM statement template for event source %s", mapping.event_source_arn)
            continue
        statement = copy.deepcopy(template)
        statement["Resource"] = mapping.event_source_arn
        statements.append(statement)

    return statements


def role_logical_id(statements: Sequence[dict[str, Any]]) -> str:
    """Stable logical id for a role, derived from its full statement list."""
    canonical = json.dumps(list(statements), sort_keys=True, separators=(",", ":"))
    return content_name("IAMRole", canonical)


def _create_role_node(logical_id: str, statements: Sequence[dict[str, Any]]) -> ResourceNode:
    return ResourceNode(
        logical_id,
        ROLE_TYPE,
        {
            "AssumeRolePolicyDocument": copy.deepcopy(ASSUME_ROLE_POLICY),
            "Policies": [
                {
                    "PolicyName": POLICY_NAME,
                    "PolicyDocument": {"Version": POLICY_VERSION, "Statement": list(statements)},
                }
            ],
        },
    )


def ensure_role(
    document: ResourceDocument,
    privileges: Sequence[Privilege],
    event_source_mappings: Sequence[EventSourceMapping] = (),
) -> tuple[str, bool]:
    """Add the role for this privilege set unless an identical one already exists.

    Returns:
        The role logical id and whether the role was created by this call
    """
    statements = synthesize_statements(privileges, event_source_mappings)
    logical_id = role_logical_id(statements)
    created = document.add_if_missing(_create_role_node(logical_id, statements))
    if not created:
        logger.debug("Reusing role %s", logical_id)
    return logical_id, created
