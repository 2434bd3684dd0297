import httpx
import pytest
from fastapi.testclient import TestClient

from chat_relay.config import Settings
from chat_relay.main import create_app
from chat_relay.modules.providers import build_registry


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        CLOUDFLARE_ACCOUNT_ID="acct-123",
        CLOUDFLARE_API_TOKEN="cf-token",
        STATIC_DIR="does-not-exist",
    )


@pytest.fixture
def make_client(settings):
    def factory(stub):
        registry = build_registry(settings, httpx.MockTransport(stub))
        return TestClient(create_app(settings, registry))

    return factory
