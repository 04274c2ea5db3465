import logging
from collections import Counter
from collections.abc import Sequence
from typing import final

from stratus.aws.api_gateway import Api, export_api
from stratus.aws.event_source import export_event_source_mapping
from stratus.aws.function import FunctionDefinition, export_function
from stratus.aws.grants import export_permission
from stratus.config import TemplateConfig
from stratus.exceptions import ExportError, ValidationError
from stratus.template import ResourceDocument

logger = logging.getLogger("stratus.assembler")


@final
class ResourceGraphAssembler:
    """Turns function, role, permission and mapping definitions into a resource document.

    Assembly is a pure in-memory transform. A run either returns a complete document
    or raises; partial output is never returned, so callers re-run the whole assembly
    after fixing the definitions.
    """

    def __init__(self, config: TemplateConfig):
        if not isinstance(config, TemplateConfig):
            raise ValidationError(
                f"Expected TemplateConfig, got {type(config).__name__}"
            )
        self._config = config

    @property
    def config(self) -> TemplateConfig:
        return self._config

    def assemble(
        self, functions: Sequence[FunctionDefinition], apis: Sequence[Api] = ()
    ) -> ResourceDocument:
        """Build the document for the given definitions.

        Raises:
            ValidationError: Before anything is emitted, if the definitions are malformed
            ExportError: If a grant, mapping or API cannot be translated
        """
        self._validate(functions, apis)
        document = ResourceDocument(self._config.description)

        for definition in functions:
            self._export_function(definition, document)
        for api in apis:
            export_api(api, document, self._config)

        logger.info(
            "Assembled %d resources for %d functions and %d APIs",
            len(document),
            len(functions),
            len(apis),
        )
        return document

    def _export_function(self, definition: FunctionDefinition, document: ResourceDocument) -> str:
        logical_id = export_function(definition, document, self._config)
        try:
            for grant in definition.permissions:
                export_permission(grant, logical_id, document, self._config)
            for mapping in definition.event_source_mappings:
                export_event_source_mapping(mapping, logical_id, document)
        except ExportError as e:
            raise ExportError(f"Function '{definition.handler}': {e}") from e
        return logical_id

    @staticmethod
    def _validate(functions: Sequence[FunctionDefinition], apis: Sequence[Api]) -> None:
        for index, definition in enumerate(functions):
            if not isinstance(definition, FunctionDefinition):
                raise ValidationError(
                    f"Item at index {index} is not a FunctionDefinition. "
                    f"Got {type(definition).__name__}."
                )

        handler_counts = Counter(definition.handler for definition in functions)
        duplicates = sorted(handler for handler, count in handler_counts.items() if count > 1)
        if duplicates:
            raise ValidationError(f"Duplicate function handlers: {', '.join(duplicates)}")

        api_names = Counter(api.name for api in apis)
        duplicate_apis = sorted(name for name, count in api_names.items() if count > 1)
        if duplicate_apis:
            raise ValidationError(f"Duplicate API names: {', '.join(duplicate_apis)}")

        for api in apis:
            for function in api.functions:
                if function not in functions:
                    raise ValidationError(
                        f"API '{api.name}' routes to '{function.handler}', "
                        "which is not part of the assembled functions"
                    )
