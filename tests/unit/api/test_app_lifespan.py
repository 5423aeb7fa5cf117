"""
Tests for application wiring: lifespan, state accessors and error handlers
"""
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_core_api, get_payment_service
from checkout.payments import PaymentService
from core.exceptions import ConfigurationError
from gateway.linkbay import LinkBayClient
from main import app
from pipeline.rate_limiter import FixedWindowRateLimiter


class TestLifespan:
    def test_builds_and_releases_collaborators(self):
        with TestClient(app) as client:
            state = app.state
            assert isinstance(state.core_api, LinkBayClient)
            assert isinstance(state.rate_limiter, FixedWindowRateLimiter)
            assert [p.name for p in state.plugin_manager.get_plugins()] == [
                "analytics-tracker",
                "fraud-detector",
                "email-notifier",
                "loyalty-points",
            ]
            assert client.get("/api/health").status_code == 200

        assert app.state.http_client is None
        assert app.state.core_api is None

    def test_plugins_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("PLUGINS_ENABLED", "false")

        with TestClient(app):
            assert len(app.state.plugin_manager) == 0


class TestStateAccessors:
    def test_missing_collaborator(self):
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(core_api=None)))

        with pytest.raises(ConfigurationError) as exc_info:
            get_core_api(request)

        assert exc_info.value.details == {"setting": "core_api"}

    def test_payment_service_from_state(self, app_state):
        request = SimpleNamespace(app=app)

        service = get_payment_service(request)

        assert isinstance(service, PaymentService)
        assert service.core_api is app_state.core_api
        assert service.stripe_gateway is app_state.stripe_gateway

    def test_uninitialised_app_answers_configuration_error(self, tenant_id):
        app.state.rate_limiter = None
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post(
            "/api/stripe/payment-intent",
            json={"amount": 10, "currency": "EUR"},
            headers={"X-Tenant-ID": tenant_id},
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "CONFIGURATION_ERROR"
