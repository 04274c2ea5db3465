import logging
from typing import final

from stratus.assembler import ResourceGraphAssembler
from stratus.aws.api_gateway import Api
from stratus.aws.function import FunctionDefinition
from stratus.config import TemplateConfig
from stratus.exceptions import ValidationError
from stratus.template import ResourceDocument

logger = logging.getLogger(__name__)


@final
class StratusApp:
    """Named collection of function and API definitions for one service."""

    def __init__(
        self,
        name: str,
        description: str = "",
        functions: list[FunctionDefinition] | None = None,
        apis: list[Api] | None = None,
    ):
        if not name or not name.strip():
            raise ValidationError("App name cannot be empty")
        self._name = name
        self._description = description
        self._functions: list[FunctionDefinition] = []
        self._apis: list[Api] = []
        for definition in functions or []:
            self.add_function(definition)
        for api in apis or []:
            self.add_api(api)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def functions(self) -> list[FunctionDefinition]:
        return list(self._functions)

    @property
    def apis(self) -> list[Api]:
        return list(self._apis)

    def add_function(self, definition: FunctionDefinition) -> FunctionDefinition:
        self._functions.append(definition)
        logger.debug("Function '%s' added to app '%s'.", definition.handler, self._name)
        return definition

    def add_api(self, api: Api) -> Api:
        self._apis.append(api)
        logger.debug("API '%s' added to app '%s'.", api.name, self._name)
        return api

    def assemble(self, config: TemplateConfig) -> ResourceDocument:
        return ResourceGraphAssembler(config).assemble(self._functions, self._apis)
