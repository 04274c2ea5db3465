import json
import logging
import sys
import textwrap
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from stratus.cli import cli
from stratus.cli.commands import load_app
from stratus.exceptions import ValidationError

APP_MODULE = textwrap.dedent(
    """
    from stratus.app import StratusApp
    from stratus.aws.api_gateway import Api, Stage
    from stratus.aws.function import FunctionDefinition, RoleDefinition
    from stratus.aws.privilege import Privilege

    orders = FunctionDefinition(
        handler="functions/orders.handler",
        role_definition=RoleDefinition([Privilege(["s3:GetObject"], "arn:aws:s3:::data/*")]),
    )
    api = Api("orders-api", stage=Stage(name="v1"))
    api.add_route("/orders", orders)

    app = StratusApp("orders", "Orders service", functions=[orders], apis=[api])
    not_an_app = "orders"
    """
)


@pytest.fixture
def project(tmp_path, monkeypatch):
    (tmp_path / "cli_orders_app.py").write_text(APP_MODULE)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "path", list(sys.path))
    yield tmp_path
    sys.modules.pop("cli_orders_app", None)


@pytest.fixture(autouse=True)
def no_log_file():
    app_logger = logging.getLogger("stratus")
    handlers = list(app_logger.handlers)
    with patch("stratus.cli._add_file_handler"):
        yield
    app_logger.handlers[:] = handlers


def _invoke(*args):
    return CliRunner().invoke(cli, list(args))


def test_template_prints_document(project):
    result = _invoke("template", "cli_orders_app:app", "--bucket", "code", "--key", "app.zip")

    assert result.exit_code == 0, result.output
    document = json.loads(result.output)
    assert document["Description"] == "Orders service"
    types = [resource["Type"] for resource in document["Resources"].values()]
    assert "AWS::Lambda::Function" in types
    assert "AWS::CloudFormation::CustomResource" in types
    codes = [
        resource["Properties"]["Code"]
        for resource in document["Resources"].values()
        if resource["Type"] == "AWS::Lambda::Function"
    ]
    assert codes
    assert all(code == {"S3Bucket": "code", "S3Key": "app.zip"} for code in codes)


def test_template_writes_output_file(project):
    output = project / "template.json"

    result = _invoke(
        "template",
        "cli_orders_app:app",
        "--bucket",
        "code",
        "--key",
        "app.zip",
        "--runtime",
        "python3.13",
        "-o",
        str(output),
    )

    assert result.exit_code == 0, result.output
    assert "Wrote" in result.output
    runtimes = {
        resource["Properties"]["Runtime"]
        for resource in json.loads(output.read_text())["Resources"].values()
        if resource["Type"] == "AWS::Lambda::Function"
    }
    assert runtimes == {"python3.13"}


@pytest.mark.parametrize(
    ("app_ref", "message"),
    [
        ("cli_orders_app", "must look like 'module:attribute'"),
        ("cli_orders_app:not_an_app", "is not a StratusApp"),
        ("missing_module_xyz:app", "Cannot import module 'missing_module_xyz'"),
    ],
)
def test_template_reports_errors(project, app_ref, message):
    result = _invoke("template", app_ref, "--bucket", "code", "--key", "app.zip")

    assert result.exit_code == 1
    assert message in result.output


def test_template_requires_code_location(project):
    result = _invoke("template", "cli_orders_app:app", "--bucket", "code")

    assert result.exit_code == 2
    assert "--key" in result.output


def test_verbose_flag_reports_verbosity(project):
    result = _invoke("-v", "template", "cli_orders_app:app", "--bucket", "code", "--key", "k")

    assert result.exit_code == 0, result.output
    assert "Console verbosity: INFO" in result.output


def test_load_app_rejects_empty_parts():
    with pytest.raises(ValidationError, match="module:attribute"):
        load_app(":app")
