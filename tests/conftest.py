import pytest

from stratus.config import CodeLocation, TemplateConfig
from stratus.template import ResourceDocument


@pytest.fixture
def config() -> TemplateConfig:
    return TemplateConfig(code=CodeLocation(bucket="code-bucket", key="bundle.zip"))


@pytest.fixture
def document() -> ResourceDocument:
    return ResourceDocument()
