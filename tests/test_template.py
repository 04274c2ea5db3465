import json

import pytest

from stratus.exceptions import ExportError
from stratus.template import (
    FUNCTION_TYPE,
    PERMISSION_TYPE,
    ResourceDocument,
    ResourceNode,
    get_att,
    join,
    ref,
)


def test_intrinsic_helpers():
    assert get_att("Fn1") == {"Fn::GetAtt": ["Fn1", "Arn"]}
    assert get_att("Sub1", "SubscriptionArn") == {"Fn::GetAtt": ["Sub1", "SubscriptionArn"]}
    assert ref("AWS::AccountId") == {"Ref": "AWS::AccountId"}
    assert join("a", ref("B"), "c") == {"Fn::Join": ["", ["a", {"Ref": "B"}, "c"]]}


def test_node_rejects_unknown_type():
    with pytest.raises(ValueError, match="Unsupported resource type: AWS::S3::Bucket"):
        ResourceNode("Bucket", "AWS::S3::Bucket")


def test_node_omits_empty_depends_on():
    assert ResourceNode("Fn", FUNCTION_TYPE, {"Handler": "a.b"}).to_dict() == {
        "Type": FUNCTION_TYPE,
        "Properties": {"Handler": "a.b"},
    }
    assert ResourceNode("Fn", FUNCTION_TYPE, depends_on=["Role"]).to_dict()["DependsOn"] == [
        "Role"
    ]


def test_document_keeps_insertion_order():
    document = ResourceDocument("orders")
    document.add(ResourceNode("B", FUNCTION_TYPE, {"v": 1}))
    document.add(ResourceNode("A", PERMISSION_TYPE))
    document.add(ResourceNode("B", FUNCTION_TYPE, {"v": 1}))

    assert [node.logical_id for node in document] == ["B", "A"]
    assert len(document) == 2
    assert "A" in document
    assert "C" not in document


def test_add_rejects_conflicting_node():
    document = ResourceDocument()
    document.add(ResourceNode("B", FUNCTION_TYPE, {"v": 1}))

    with pytest.raises(ExportError, match="Resource B is already defined"):
        document.add(ResourceNode("B", FUNCTION_TYPE, {"v": 2}))

    assert document["B"].properties == {"v": 1}


def test_add_if_missing_keeps_first():
    document = ResourceDocument()

    assert document.add_if_missing(ResourceNode("A", FUNCTION_TYPE, {"v": 1})) is True
    assert document.add_if_missing(ResourceNode("A", FUNCTION_TYPE, {"v": 2})) is False
    assert document["A"].properties == {"v": 1}


def test_document_envelope():
    document = ResourceDocument("orders service")
    document.add(ResourceNode("Fn", FUNCTION_TYPE, {"Handler": "a.b"}))

    rendered = json.loads(document.to_json())

    assert rendered == {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Description": "orders service",
        "Resources": {"Fn": {"Type": FUNCTION_TYPE, "Properties": {"Handler": "a.b"}}},
    }
    assert "Description" not in ResourceDocument().to_dict()
