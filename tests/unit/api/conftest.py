"""
Shared test configuration for API route tests

The application lifespan is not run: collaborators are placed on
``app.state`` directly so each test controls them.
"""
import pytest
from fastapi.testclient import TestClient

from main import app

STATE_ATTRIBUTES = ("http_client", "core_api", "stripe_gateway", "rate_limiter", "plugin_manager")


@pytest.fixture
def app_state(core_api, stripe_gateway, rate_limiter, plugin_manager, http_client):
    app.state.http_client = http_client
    app.state.core_api = core_api
    app.state.stripe_gateway = stripe_gateway
    app.state.rate_limiter = rate_limiter
    app.state.plugin_manager = plugin_manager
    yield app.state
    for name in STATE_ATTRIBUTES:
        setattr(app.state, name, None)


@pytest.fixture
def client(app_state):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def tenant_headers(tenant_id):
    return {"X-Tenant-ID": tenant_id}
