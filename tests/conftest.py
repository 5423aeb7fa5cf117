"""
Shared fixtures for the FastCheckout test suite
"""
from typing import Any, Dict
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from checkout.models import Tenant
from core.config import get_settings
from gateway.linkbay import LinkBayClient
from gateway.stripe_client import StripeGateway
from pipeline.rate_limiter import FixedWindowRateLimiter
from plugins.manager import PluginManager

TENANT_ID = "123e4567-e89b-12d3-a456-426614174000"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings overridden through monkeypatch must not leak between tests"""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def tenant_id() -> str:
    return TENANT_ID


def make_tenant_payload(**overrides) -> Dict[str, Any]:
    """Core API representation of a tenant with both processors enabled"""
    payload = {
        "id": TENANT_ID,
        "name": "Acme Store",
        "brandColor": "#FF6600",
        "enabledPaymentMethods": ["stripe", "paypal"],
        "currency": "EUR",
        "taxRate": 0.22,
        "shippingConfig": {
            "methods": [
                {"id": "standard", "name": "Standard", "price": 5, "estimatedDays": "3-5"},
                {"id": "express", "name": "Express", "price": 12.5, "estimatedDays": "1-2"},
            ],
            "freeShippingThreshold": 100,
        },
        "stripeConfig": {
            "publicKey": "pk_test_123",
            "secretKey": "sk_test_123",
            "webhookSecret": "whsec_123",
            "enabled": True,
        },
        "paypalConfig": {
            "clientId": "paypal-client",
            "clientSecret": "paypal-secret",
            "mode": "sandbox",
            "enabled": True,
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def tenant_factory():
    """Build tenants from the default payload with field overrides"""

    def build(**overrides) -> Tenant:
        return Tenant.model_validate(make_tenant_payload(**overrides))

    return build


@pytest.fixture
def tenant_payload() -> Dict[str, Any]:
    return make_tenant_payload()


@pytest.fixture
def tenant(tenant_payload) -> Tenant:
    return Tenant.model_validate(tenant_payload)


@pytest.fixture
def core_api(tenant) -> Mock:
    """Core API client double returning the default tenant"""
    client = Mock(spec=LinkBayClient)
    client.get_tenant = AsyncMock(return_value=tenant)
    client.record_metrics = AsyncMock(return_value=None)
    client.send_webhook_event = AsyncMock(return_value=None)
    client.get_checkout_analytics = AsyncMock()
    return client


@pytest.fixture
def stripe_gateway() -> Mock:
    gateway = Mock(spec=StripeGateway)
    gateway.create_payment_intent = AsyncMock(
        return_value={"client_secret": "pi_123_secret_456", "payment_intent_id": "pi_123"}
    )
    return gateway


@pytest.fixture
def plugin_manager() -> PluginManager:
    return PluginManager()


@pytest.fixture
def rate_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(max_requests=100, window_seconds=900)


@pytest.fixture
def paypal_transport():
    """Mock transport answering the PayPal endpoints; ``calls`` records requests"""

    class PayPalTransport:
        def __init__(self):
            self.calls = []
            self.fail_capture = False

        def __call__(self, request: httpx.Request) -> httpx.Response:
            self.calls.append(request)
            path = request.url.path
            if path == "/v1/oauth2/token":
                return httpx.Response(200, json={"access_token": "token-abc"})
            if path == "/v2/checkout/orders":
                return httpx.Response(201, json={"id": "ORDER-1", "status": "CREATED"})
            if path.endswith("/capture"):
                if self.fail_capture:
                    return httpx.Response(422, json={"name": "UNPROCESSABLE_ENTITY"})
                return httpx.Response(
                    201,
                    json={
                        "id": "ORDER-1",
                        "status": "COMPLETED",
                        "purchase_units": [
                            {
                                "payments": {
                                    "captures": [
                                        {"id": "CAPTURE-1", "amount": {"value": "47.70", "currency_code": "EUR"}}
                                    ]
                                }
                            }
                        ],
                    },
                )
            return httpx.Response(404, json={"message": "not found"})

    return PayPalTransport()


@pytest.fixture
def http_client(paypal_transport):
    return httpx.AsyncClient(transport=httpx.MockTransport(paypal_transport))
