from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from metaquery.core.config import settings

# Override settings for tests: no process-level keys unless a test installs them
settings.openai_api_key = ""
settings.anthropic_api_key = ""
settings.gemini_api_key = ""
settings.grok_api_key = ""
settings.app_env = "development"

from metaquery.core.dependencies import get_gateway  # noqa: E402
from metaquery.gateway.gateway import QueryGateway  # noqa: E402
from metaquery.gateway.types import ProviderId  # noqa: E402
from metaquery.main import app  # noqa: E402


@pytest.fixture
def install_gateway():
    """Serve the API from a gateway with the given process-level keys."""

    def _install(**default_api_keys: str) -> QueryGateway:
        gateway = QueryGateway(default_api_keys={ProviderId(k): v for k, v in default_api_keys.items()})
        app.dependency_overrides[get_gateway] = lambda: gateway
        return gateway

    _install()
    yield _install
    app.dependency_overrides.pop(get_gateway, None)


@pytest.fixture
async def client(install_gateway) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
