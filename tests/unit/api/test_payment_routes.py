"""
Tests for the Stripe and PayPal payment routes
"""
import pytest

from core.exceptions import CoreAPIError
from pipeline.rate_limiter import FixedWindowRateLimiter
from plugins.base import Hook, Plugin, ValidationResult

pytestmark = [pytest.mark.critical]

INTENT_BODY = {"amount": 47.7, "currency": "EUR", "metadata": {"sessionId": "session-1"}}


class TestCreatePaymentIntent:
    def test_success(self, client, tenant_headers, stripe_gateway):
        response = client.post("/api/stripe/payment-intent", json=INTENT_BODY, headers=tenant_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"clientSecret": "pi_123_secret_456", "paymentIntentId": "pi_123"}
        stripe_gateway.create_payment_intent.assert_awaited_once()

    def test_missing_tenant(self, client, stripe_gateway):
        response = client.post("/api/stripe/payment-intent", json=INTENT_BODY)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_TENANT_ID"
        stripe_gateway.create_payment_intent.assert_not_awaited()

    def test_invalid_tenant(self, client):
        response = client.post("/api/stripe/payment-intent", json=INTENT_BODY, headers={"X-Tenant-ID": "tenant-123"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TENANT_ID"

    def test_invalid_body(self, client, tenant_headers):
        response = client.post(
            "/api/stripe/payment-intent",
            json={"amount": -1, "currency": "EURO"},
            headers=tenant_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert {item["field"] for item in error["details"]["errors"]} == {"amount", "currency"}

    def test_non_json_body(self, client, tenant_headers):
        response = client.post(
            "/api/stripe/payment-intent",
            content=b"amount=10",
            headers={**tenant_headers, "Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Request body must be valid JSON"

    def test_stripe_not_enabled(self, client, tenant_headers, core_api, tenant_factory):
        core_api.get_tenant.return_value = tenant_factory(stripeConfig=None)

        response = client.post("/api/stripe/payment-intent", json=INTENT_BODY, headers=tenant_headers)

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "STRIPE_NOT_ENABLED",
            "message": "Stripe is not enabled for this tenant",
        }

    def test_plugin_validation_failure(self, client, tenant_headers, plugin_manager):
        async def reject(ctx):
            return ValidationResult.from_errors(["Suspicious email address detected"])

        plugin_manager.register(Plugin(name="fraud", version="1", hooks={Hook.ON_VALIDATION: reject}))

        response = client.post("/api/stripe/payment-intent", json=INTENT_BODY, headers=tenant_headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_FAILED"
        assert error["details"] == {"errors": ["Suspicious email address detected"]}

    def test_core_api_failure_is_internal_error(self, client, tenant_headers, core_api):
        core_api.get_tenant.side_effect = CoreAPIError("404 - Tenant not found", status_code=404)

        response = client.post("/api/stripe/payment-intent", json=INTENT_BODY, headers=tenant_headers)

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "Failed to create payment intent",
            "details": "LinkBay API Error: 404 - Tenant not found",
        }


class TestPipelineLayers:
    def test_rate_limit(self, client, app_state, tenant_headers):
        app_state.rate_limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)

        first = client.post("/api/stripe/payment-intent", json=INTENT_BODY, headers=tenant_headers)
        second = client.post("/api/stripe/payment-intent", json=INTENT_BODY, headers=tenant_headers)

        assert first.status_code == 200
        assert second.status_code == 429
        assert int(second.headers["retry-after"]) > 0
        assert second.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"

    def test_rate_limit_runs_before_tenant_check(self, client, app_state):
        app_state.rate_limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)

        client.post("/api/stripe/payment-intent", json=INTENT_BODY)
        response = client.post("/api/stripe/payment-intent", json=INTENT_BODY)

        assert response.status_code == 429

    def test_csrf_enforced_when_enabled(self, client, tenant_headers, monkeypatch):
        monkeypatch.setenv("CSRF_ENABLED", "true")

        rejected = client.post("/api/stripe/payment-intent", json=INTENT_BODY, headers=tenant_headers)
        accepted = client.post(
            "/api/stripe/payment-intent",
            json=INTENT_BODY,
            headers={**tenant_headers, "X-CSRF-Token": "token-1", "Cookie": "csrf-token=token-1"},
        )

        assert rejected.status_code == 403
        assert rejected.json()["error"]["code"] == "CSRF_VALIDATION_FAILED"
        assert accepted.status_code == 200


class TestPayPalRoutes:
    def test_create_order(self, client, tenant_headers):
        response = client.post(
            "/api/paypal/create-order",
            json={"amount": 47.7, "currency": "EUR", "sessionId": "session-1"},
            headers=tenant_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"orderId": "ORDER-1"}

    def test_create_order_paypal_disabled(self, client, tenant_headers, core_api, tenant_factory):
        core_api.get_tenant.return_value = tenant_factory(paypalConfig=None)

        response = client.post("/api/paypal/create-order", json={"amount": 10, "currency": "EUR"}, headers=tenant_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PAYPAL_NOT_ENABLED"

    def test_capture_order(self, client, tenant_headers):
        response = client.post(
            "/api/paypal/capture-order",
            json={"orderId": "ORDER-1", "sessionId": "session-1"},
            headers=tenant_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"captureId": "CAPTURE-1", "status": "COMPLETED"}

    def test_capture_requires_order_id(self, client, tenant_headers):
        response = client.post("/api/paypal/capture-order", json={"orderId": ""}, headers=tenant_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_capture_failure(self, client, tenant_headers, paypal_transport):
        paypal_transport.fail_capture = True

        response = client.post("/api/paypal/capture-order", json={"orderId": "ORDER-1"}, headers=tenant_headers)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "PAYPAL_ERROR"
        assert error["message"].startswith("PayPal capture failed")

    def test_core_api_failure(self, client, tenant_headers, core_api):
        core_api.get_tenant.side_effect = CoreAPIError("Request failed - timeout")

        response = client.post("/api/paypal/create-order", json={"amount": 10, "currency": "EUR"}, headers=tenant_headers)

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "PAYPAL_ERROR",
            "message": "LinkBay API Error: Request failed - timeout",
        }
