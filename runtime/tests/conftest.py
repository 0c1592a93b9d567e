import pytest
from fastapi.testclient import TestClient

from runtime.app.config import RuntimeConfig
from runtime.app.main import create_app


@pytest.fixture
def runtime_config() -> RuntimeConfig:
    return RuntimeConfig(MAX_HOST_DOCUMENT_KB=16)


@pytest.fixture
def runtime_client(runtime_config: RuntimeConfig):
    app = create_app(config=runtime_config)
    with TestClient(app) as test_client:
        yield test_client
