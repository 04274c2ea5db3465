import pytest

from stratus.app import StratusApp
from stratus.aws.api_gateway import Api
from stratus.exceptions import ValidationError
from stratus.template import CUSTOM_RESOURCE_TYPE, FUNCTION_TYPE

from .helpers import make_function


def test_app_requires_a_name():
    with pytest.raises(ValidationError, match="App name cannot be empty"):
        StratusApp(" ")


def test_app_collects_definitions():
    function = make_function()
    app = StratusApp("orders", functions=[function])
    api = app.add_api(Api("orders-api"))

    assert app.functions == [function]
    assert app.apis == [api]
    assert app.add_function(make_function("functions/other.handler")).handler == (
        "functions/other.handler"
    )
    assert len(app.functions) == 2


def test_app_assembles(config):
    function = make_function()
    api = Api("orders-api")
    api.add_route("/orders", function)
    app = StratusApp("orders", functions=[function], apis=[api])

    document = app.assemble(config)

    assert function.logical_id in document
    assert document[function.logical_id].type == FUNCTION_TYPE
    assert document[api.logical_id].type == CUSTOM_RESOURCE_TYPE
