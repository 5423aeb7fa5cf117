"""
Tests for the bundled plugins and their registration
"""
import logging

import pytest

from plugins import EXAMPLE_PLUGINS, initialize_plugins
from plugins.base import Hook, PluginContext
from plugins.examples import (
    analytics_plugin,
    email_notification_plugin,
    fraud_detection_plugin,
    loyalty_points_for,
    loyalty_points_plugin,
)
from plugins.manager import PluginManager

TENANT_ID = "123e4567-e89b-12d3-a456-426614174000"


def make_context(total=47.7, email="mario.rossi@example.com"):
    return PluginContext(
        tenant_id=TENANT_ID,
        session_id="session-1",
        checkout_data={
            "cart": {"total": total, "currency": "EUR"},
            "shippingAddress": {"email": email},
        },
    )


class TestBundledPlugins:
    def test_capabilities(self):
        assert analytics_plugin.capabilities == {
            Hook.BEFORE_CHECKOUT_INIT,
            Hook.BEFORE_PAYMENT,
            Hook.AFTER_PAYMENT_SUCCESS,
            Hook.AFTER_PAYMENT_FAILURE,
        }
        assert fraud_detection_plugin.capabilities == {Hook.ON_VALIDATION}
        assert email_notification_plugin.capabilities == {Hook.AFTER_PAYMENT_SUCCESS, Hook.AFTER_PAYMENT_FAILURE}
        assert loyalty_points_plugin.capabilities == {Hook.AFTER_PAYMENT_SUCCESS}

    def test_registration_order(self):
        assert [p.name for p in EXAMPLE_PLUGINS] == [
            "analytics-tracker",
            "fraud-detector",
            "email-notifier",
            "loyalty-points",
        ]

    @pytest.mark.asyncio
    async def test_analytics_returns_context_unchanged(self):
        ctx = make_context()

        result = await analytics_plugin.get_hook(Hook.BEFORE_PAYMENT)(ctx)

        assert result == ctx


class TestFraudDetection:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", ["test@example.com", "fake.user@example.com", "mytest@shop.it"])
    async def test_flags_suspicious_emails(self, email):
        result = await fraud_detection_plugin.get_hook(Hook.ON_VALIDATION)(make_context(email=email))

        assert not result.valid
        assert result.errors == ["Suspicious email address detected"]

    @pytest.mark.asyncio
    async def test_accepts_regular_email(self):
        result = await fraud_detection_plugin.get_hook(Hook.ON_VALIDATION)(make_context())

        assert result.valid

    @pytest.mark.asyncio
    async def test_high_value_only_warns(self, caplog):
        caplog.set_level(logging.WARNING)

        result = await fraud_detection_plugin.get_hook(Hook.ON_VALIDATION)(make_context(total=15000))

        assert result.valid
        assert any("High value transaction" in record.getMessage() for record in caplog.records)

    @pytest.mark.asyncio
    async def test_missing_address_is_valid(self):
        ctx = PluginContext(tenant_id=TENANT_ID, session_id="s", checkout_data={})

        result = await fraud_detection_plugin.get_hook(Hook.ON_VALIDATION)(ctx)

        assert result.valid


class TestLoyaltyPoints:
    @pytest.mark.parametrize("amount, points", [(0, 0), (9.99, 0), (10, 1), (47.7, 4), (150, 15)])
    def test_points_per_ten_units(self, amount, points):
        assert loyalty_points_for(amount) == points

    @pytest.mark.asyncio
    async def test_award_logs_points(self, caplog):
        caplog.set_level(logging.INFO)

        await loyalty_points_plugin.get_hook(Hook.AFTER_PAYMENT_SUCCESS)(make_context(total=150))

        assert any("Awarding 15 points" in record.getMessage() for record in caplog.records)


class TestInitializePlugins:
    def test_registers_bundled_plugins(self):
        manager = initialize_plugins(PluginManager())

        assert [p.name for p in manager.get_plugins()] == [p.name for p in EXAMPLE_PLUGINS]

    def test_registers_given_plugins(self):
        manager = initialize_plugins(PluginManager(), plugins=[loyalty_points_plugin])

        assert [p.name for p in manager.get_plugins()] == ["loyalty-points"]

    @pytest.mark.asyncio
    async def test_bundled_validation_end_to_end(self):
        manager = initialize_plugins(PluginManager())

        result = await manager.execute_on_validation(make_context(email="fake@example.com"))

        assert result.errors == ["Suspicious email address detected"]
