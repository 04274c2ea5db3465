from stratus.aws.constants import (
    ASSUME_ROLE_POLICY,
    EVENT_SOURCE_STATEMENTS,
    LOGS_STATEMENT,
    POLICY_NAME,
)
from stratus.aws.event_source import EventSourceMapping
from stratus.aws.iam import ensure_role, role_logical_id, synthesize_statements
from stratus.aws.privilege import Privilege
from stratus.template import ROLE_TYPE

from ..helpers import QUEUE_ARN, STREAM_ARN, of_type, read_privilege


def test_logs_statement_always_comes_first():
    statements = synthesize_statements([read_privilege()])

    assert statements[0] == LOGS_STATEMENT
    assert statements[1] == read_privilege().to_statement()


def test_empty_privileges_still_write_logs():
    assert synthesize_statements([]) == [LOGS_STATEMENT]


def test_event_source_statements_are_scoped_to_the_exact_arn():
    mappings = [
        EventSourceMapping(event_source_arn=STREAM_ARN),
        EventSourceMapping(event_source_arn=QUEUE_ARN),
    ]

    statements = synthesize_statements([read_privilege()], mappings)

    assert len(statements) == 4
    assert statements[2]["Resource"] == STREAM_ARN
    assert "dynamodb:GetRecords" in statements[2]["Action"]
    assert statements[3]["Resource"] == QUEUE_ARN
    assert "sqs:ReceiveMessage" in statements[3]["Action"]


def test_unknown_event_source_service_adds_nothing():
    mapping = EventSourceMapping(event_source_arn="arn:aws:mq:us-east-1:123456789012:broker:b")

    assert synthesize_statements([], [mapping]) == [LOGS_STATEMENT]


def test_synthesis_does_not_mutate_templates():
    synthesize_statements([], [EventSourceMapping(event_source_arn=STREAM_ARN)])
    synthesize_statements([], [EventSourceMapping(event_source_arn=QUEUE_ARN)])

    assert "Resource" not in EVENT_SOURCE_STATEMENTS["sqs"]


def test_role_id_depends_on_statement_order():
    a = Privilege(actions=["s3:GetObject"], resources="arn:a")
    b = Privilege(actions=["s3:GetObject"], resources="arn:b")

    assert role_logical_id(synthesize_statements([a, b])) == role_logical_id(
        synthesize_statements([a, b])
    )
    assert role_logical_id(synthesize_statements([a, b])) != role_logical_id(
        synthesize_statements([b, a])
    )


def test_ensure_role_creates_then_reuses(document):
    first_id, first_created = ensure_role(document, [read_privilege()])
    second_id, second_created = ensure_role(document, [read_privilege()])

    assert first_id == second_id
    assert first_created is True
    assert second_created is False
    assert len(of_type(document, ROLE_TYPE)) == 1


def test_role_node_shape(document):
    role_id, _ = ensure_role(document, [read_privilege()])
    properties = document[role_id].properties

    assert role_id.startswith("IAMRole")
    assert properties["AssumeRolePolicyDocument"] == ASSUME_ROLE_POLICY
    assert properties["Policies"][0]["PolicyName"] == POLICY_NAME
    assert properties["Policies"][0]["PolicyDocument"] == {
        "Version": "2012-10-17",
        "Statement": [LOGS_STATEMENT, read_privilege().to_statement()],
    }


def test_different_privileges_create_different_roles(document):
    first_id, _ = ensure_role(document, [read_privilege("arn:aws:s3:::one/*")])
    second_id, _ = ensure_role(document, [read_privilege("arn:aws:s3:::two/*")])

    assert first_id != second_id
    assert len(of_type(document, ROLE_TYPE)) == 2
