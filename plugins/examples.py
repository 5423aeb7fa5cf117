"""
Bundled plugins

Small reference plugins that exercise every lifecycle hook: analytics
tracking, fraud screening, customer notification and loyalty points.
"""
import math

from core.logging import get_logger
from plugins.base import Hook, Plugin, PluginContext, ValidationResult

logger = get_logger("plugins.examples", domain="plugins")

HIGH_VALUE_THRESHOLD = 10000
SUSPICIOUS_EMAIL_MARKERS = ("test", "fake")
EUROS_PER_LOYALTY_POINT = 10


# Analytics tracker


async def _analytics_checkout_initialized(ctx: PluginContext) -> PluginContext:
    logger.info(
        "[Analytics] Checkout initialized",
        extra={"tenant_id": ctx.tenant_id, "session_id": ctx.session_id},
    )
    return ctx


async def _analytics_payment_initiated(ctx: PluginContext) -> PluginContext:
    logger.info(
        "[Analytics] Payment initiated",
        extra={"tenant_id": ctx.tenant_id, "session_id": ctx.session_id, "amount": ctx.cart.get("total")},
    )
    return ctx


async def _analytics_payment_succeeded(ctx: PluginContext) -> None:
    logger.info(
        "[Analytics] Payment successful",
        extra={
            "tenant_id": ctx.tenant_id,
            "session_id": ctx.session_id,
            "value": ctx.cart.get("total"),
            "currency": ctx.cart.get("currency"),
        },
    )


async def _analytics_payment_failed(ctx: PluginContext) -> None:
    logger.info(
        "[Analytics] Payment failed",
        extra={"tenant_id": ctx.tenant_id, "session_id": ctx.session_id},
    )


analytics_plugin = Plugin(
    name="analytics-tracker",
    version="1.0.0",
    description="Tracks checkout events",
    hooks={
        Hook.BEFORE_CHECKOUT_INIT: _analytics_checkout_initialized,
        Hook.BEFORE_PAYMENT: _analytics_payment_initiated,
        Hook.AFTER_PAYMENT_SUCCESS: _analytics_payment_succeeded,
        Hook.AFTER_PAYMENT_FAILURE: _analytics_payment_failed,
    },
)


# Fraud detector


async def _fraud_validate(ctx: PluginContext) -> ValidationResult:
    errors = []

    total = ctx.cart.get("total") or 0
    if total > HIGH_VALUE_THRESHOLD:
        logger.warning(
            "[FraudDetection] High value transaction detected",
            extra={"tenant_id": ctx.tenant_id, "session_id": ctx.session_id, "amount": total},
        )

    email = ctx.shipping_address.get("email") or ""
    if any(marker in email for marker in SUSPICIOUS_EMAIL_MARKERS):
        errors.append("Suspicious email address detected")

    return ValidationResult.from_errors(errors)


fraud_detection_plugin = Plugin(
    name="fraud-detector",
    version="1.0.0",
    description="Screens checkout data for suspicious patterns",
    hooks={Hook.ON_VALIDATION: _fraud_validate},
)


# Email notifier


async def _email_order_confirmation(ctx: PluginContext) -> None:
    customer_email = ctx.shipping_address.get("email")
    logger.info(f"[EmailNotifier] Sending order confirmation email to {customer_email}")


async def _email_payment_failure(ctx: PluginContext) -> None:
    logger.info("[EmailNotifier] Sending payment failure notification")


email_notification_plugin = Plugin(
    name="email-notifier",
    version="1.0.0",
    description="Notifies customers about payment outcomes",
    hooks={
        Hook.AFTER_PAYMENT_SUCCESS: _email_order_confirmation,
        Hook.AFTER_PAYMENT_FAILURE: _email_payment_failure,
    },
)


# Loyalty points


def loyalty_points_for(amount: float) -> int:
    """One point per full 10 units of currency spent"""
    return math.floor((amount or 0) / EUROS_PER_LOYALTY_POINT)


async def _loyalty_award_points(ctx: PluginContext) -> None:
    points = loyalty_points_for(ctx.cart.get("total") or 0)
    customer_email = ctx.shipping_address.get("email")
    logger.info(f"[LoyaltyPoints] Awarding {points} points to customer {customer_email}")


loyalty_points_plugin = Plugin(
    name="loyalty-points",
    version="1.0.0",
    description="Awards loyalty points after a successful purchase",
    hooks={Hook.AFTER_PAYMENT_SUCCESS: _loyalty_award_points},
)


EXAMPLE_PLUGINS = [
    analytics_plugin,
    fraud_detection_plugin,
    email_notification_plugin,
    loyalty_points_plugin,
]
