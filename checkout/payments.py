"""
Payment orchestration

Ties a payment request to its tenant, the plugin pipeline, the payment
processor and the Core API:

    tenant lookup -> processor enabled? -> plugin validation -> beforePayment
        -> processor call -> metrics / webhook relay -> after-payment hooks

Core API notifications on the payment routes are best effort: a failure is
logged and counted but never fails the payment.
"""
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from checkout.models import MetricsEvent, MetricsEventType, PaymentMethod, Tenant, WebhookEvent, WebhookEventType
from checkout.schemas import CapturePayPalOrderRequest, CreatePaymentIntentRequest, CreatePayPalOrderRequest
from core.exceptions import CheckoutValidationError, ProviderNotEnabledError, WebhookError
from core.logging import get_logger
from core.metrics import metrics
from gateway.linkbay import LinkBayClient
from gateway.paypal_client import PayPalClient
from gateway.stripe_client import StripeGateway
from plugins.base import PluginContext
from plugins.manager import PluginManager

logger = get_logger("checkout.payments", domain="checkout")

UNKNOWN_SESSION = "unknown"


class PaymentService:
    """Runs one payment operation for one tenant"""

    def __init__(
        self,
        core_api: LinkBayClient,
        plugin_manager: PluginManager,
        http_client: httpx.AsyncClient,
        stripe_gateway: Optional[StripeGateway] = None,
    ):
        self.core_api = core_api
        self.plugin_manager = plugin_manager
        self.http_client = http_client
        self.stripe_gateway = stripe_gateway or StripeGateway()

    # Stripe

    async def create_stripe_payment_intent(
        self,
        tenant_id: str,
        request: CreatePaymentIntentRequest,
    ) -> Dict[str, Any]:
        """Create a payment intent with the tenant's Stripe account"""
        tenant = await self.core_api.get_tenant(tenant_id)
        if not tenant.stripe_enabled:
            raise ProviderNotEnabledError(PaymentMethod.STRIPE.value)

        session_id = request.session_id
        context = await self._run_pre_payment_hooks(
            self._payment_context(tenant_id, session_id, request.amount, request.currency, PaymentMethod.STRIPE, request.metadata)
        )

        metadata = dict(request.metadata or {})
        metadata.update(self._string_metadata(context))

        try:
            intent = await self.stripe_gateway.create_payment_intent(
                secret_key=tenant.stripe_config.secret_key,
                amount=request.amount,
                currency=request.currency,
                metadata=metadata,
                tenant_id=tenant_id,
            )
        except Exception:
            metrics.track_payment("stripe", "create_intent", "failure")
            await self.plugin_manager.execute_after_payment_failure(context)
            raise

        metrics.track_payment("stripe", "create_intent", "success")
        await self._record_metrics(tenant_id, session_id, MetricsEventType.STARTED, {"paymentMethod": "stripe"})

        return {
            "clientSecret": intent["client_secret"],
            "paymentIntentId": intent["payment_intent_id"],
        }

    async def handle_stripe_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
        webhook_secret: Optional[str],
    ) -> str:
        """
        Verify and process a Stripe webhook

        Returns:
            The event type

        Raises:
            WebhookError: missing signature or secret, bad signature, missing
                tenant metadata, or a failed Core API relay
        """
        if not signature:
            raise WebhookError("Missing Stripe signature", error_code="MISSING_SIGNATURE")

        if not webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET not configured")
            raise WebhookError("Webhook secret not configured", error_code="WEBHOOK_NOT_CONFIGURED", status_code=500)

        event = self.stripe_gateway.construct_event(payload, signature, webhook_secret)
        event_type = event["type"]
        obj = event["data"]["object"]
        metadata = dict(obj.get("metadata") or {})
        tenant_id = metadata.get("tenantId")

        if not tenant_id:
            logger.error("Missing tenantId in webhook event metadata")
            raise WebhookError("Missing tenantId in event metadata", error_code="MISSING_TENANT_ID")

        logger.info(f"[Stripe Webhook] Event: {event_type}, Tenant: {tenant_id}")
        session_id = metadata.get("sessionId") or UNKNOWN_SESSION

        try:
            if event_type == "payment_intent.succeeded":
                await self._handle_intent_succeeded(tenant_id, session_id, obj, metadata)
            elif event_type == "payment_intent.payment_failed":
                await self._handle_intent_failed(tenant_id, session_id, obj, metadata)
            elif event_type == "charge.refunded":
                await self._send_webhook_event(
                    WebhookEventType.ORDER_UPDATED,
                    tenant_id,
                    {
                        "chargeId": obj.get("id"),
                        "status": "refunded",
                        "amount": (obj.get("amount_refunded") or 0) / 100,
                    },
                )
            else:
                logger.info(f"Unhandled event type: {event_type}")
        except WebhookError:
            raise
        except Exception as e:
            logger.error(f"Stripe webhook error: {e}")
            raise WebhookError(str(e) or "Unknown error") from e

        return event_type

    async def _handle_intent_succeeded(
        self,
        tenant_id: str,
        session_id: str,
        intent: Mapping[str, Any],
        metadata: Dict[str, Any],
    ) -> None:
        amount = (intent.get("amount") or 0) / 100
        await self._send_webhook_event(
            WebhookEventType.PAYMENT_SUCCEEDED,
            tenant_id,
            {
                "paymentIntentId": intent.get("id"),
                "amount": amount,
                "currency": intent.get("currency"),
                "metadata": metadata,
            },
        )
        metrics.track_payment("stripe", "payment", "success")
        await self._record_metrics(
            tenant_id,
            session_id,
            MetricsEventType.COMPLETED,
            {"paymentMethod": "stripe", "amount": amount},
        )
        await self.plugin_manager.execute_after_payment_success(
            self._payment_context(tenant_id, session_id, amount, intent.get("currency"), PaymentMethod.STRIPE, metadata)
        )

    async def _handle_intent_failed(
        self,
        tenant_id: str,
        session_id: str,
        intent: Mapping[str, Any],
        metadata: Dict[str, Any],
    ) -> None:
        last_error = intent.get("last_payment_error") or {}
        await self._send_webhook_event(
            WebhookEventType.PAYMENT_FAILED,
            tenant_id,
            {
                "paymentIntentId": intent.get("id"),
                "error": last_error.get("message"),
                "metadata": metadata,
            },
        )
        metrics.track_payment("stripe", "payment", "failure")
        await self._record_metrics(
            tenant_id,
            session_id,
            MetricsEventType.PAYMENT_FAILED,
            {"paymentMethod": "stripe", "error": last_error.get("code")},
        )
        await self.plugin_manager.execute_after_payment_failure(
            self._payment_context(
                tenant_id,
                session_id,
                (intent.get("amount") or 0) / 100,
                intent.get("currency"),
                PaymentMethod.STRIPE,
                metadata,
            )
        )

    # PayPal

    async def create_paypal_order(self, tenant_id: str, request: CreatePayPalOrderRequest) -> Dict[str, Any]:
        """Create a PayPal order the buyer approves client side"""
        tenant = await self.core_api.get_tenant(tenant_id)
        client = self._paypal_client(tenant)
        session_id = request.session_id or UNKNOWN_SESSION

        context = await self._run_pre_payment_hooks(
            self._payment_context(tenant_id, session_id, request.amount, request.currency, PaymentMethod.PAYPAL)
        )

        try:
            order = await client.create_order(
                amount=request.amount,
                currency=request.currency,
                tenant_id=tenant_id,
                session_id=request.session_id,
                brand_name=tenant.name,
            )
        except Exception:
            metrics.track_payment("paypal", "create_order", "failure")
            await self.plugin_manager.execute_after_payment_failure(context)
            raise

        metrics.track_payment("paypal", "create_order", "success")
        await self._record_metrics(tenant_id, session_id, MetricsEventType.STARTED, {"paymentMethod": "paypal"})
        return {"orderId": order["id"]}

    async def capture_paypal_order(self, tenant_id: str, request: CapturePayPalOrderRequest) -> Dict[str, Any]:
        """Capture an approved PayPal order and relay the payment to the Core API"""
        tenant = await self.core_api.get_tenant(tenant_id)
        client = self._paypal_client(tenant)
        session_id = request.session_id or UNKNOWN_SESSION

        try:
            capture = await client.capture_order(request.order_id)
        except Exception as e:
            metrics.track_payment("paypal", "capture", "failure")
            await self._record_metrics(
                tenant_id,
                session_id,
                MetricsEventType.PAYMENT_FAILED,
                {"paymentMethod": "paypal", "error": str(e)},
            )
            await self.plugin_manager.execute_after_payment_failure(
                self._payment_context(tenant_id, session_id, None, None, PaymentMethod.PAYPAL)
            )
            raise

        metrics.track_payment("paypal", "capture", "success")
        await self._notify(
            "webhook",
            lambda: self._send_webhook_event(
                WebhookEventType.PAYMENT_SUCCEEDED,
                tenant_id,
                {
                    "paymentId": capture["order_id"],
                    "captureId": capture["capture_id"],
                    "amount": capture["amount"],
                    "currency": capture["currency"],
                    "sessionId": request.session_id,
                },
            ),
        )
        await self._record_metrics(
            tenant_id,
            session_id,
            MetricsEventType.COMPLETED,
            {"paymentMethod": "paypal", "amount": capture["amount"]},
        )
        await self.plugin_manager.execute_after_payment_success(
            self._payment_context(tenant_id, session_id, capture["amount"], capture["currency"], PaymentMethod.PAYPAL)
        )

        return {"captureId": capture["capture_id"], "status": capture["status"]}

    def _paypal_client(self, tenant: Tenant) -> PayPalClient:
        if not tenant.paypal_enabled:
            raise ProviderNotEnabledError(PaymentMethod.PAYPAL.value)
        return PayPalClient(tenant.paypal_config, self.http_client)

    # Plugins

    async def _run_pre_payment_hooks(self, context: PluginContext) -> PluginContext:
        validation = await self.plugin_manager.execute_on_validation(context)
        if not validation.valid:
            logger.info(f"Payment for session {context.session_id} rejected by plugins: {validation.errors}")
            raise CheckoutValidationError(validation.errors)
        return await self.plugin_manager.execute_before_payment(context)

    @staticmethod
    def _payment_context(
        tenant_id: str,
        session_id: str,
        amount: Optional[float],
        currency: Optional[str],
        method: PaymentMethod,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> PluginContext:
        checkout_data: Dict[str, Any] = {
            "cart": {"total": amount, "currency": currency.upper() if currency else None},
            "selectedPaymentMethod": method.value,
        }
        if metadata:
            checkout_data["metadata"] = dict(metadata)
        return PluginContext(tenant_id=tenant_id, session_id=session_id, checkout_data=checkout_data)

    @staticmethod
    def _string_metadata(context: PluginContext) -> Dict[str, str]:
        # Stripe metadata values must be strings
        metadata = context.checkout_data.get("metadata") or {}
        return {str(k): str(v) for k, v in metadata.items() if v is not None}

    # Core API notifications

    async def _send_webhook_event(self, event_type: WebhookEventType, tenant_id: str, data: Dict[str, Any]) -> None:
        await self.core_api.send_webhook_event(WebhookEvent(type=event_type, tenant_id=tenant_id, data=data))

    async def _record_metrics(
        self,
        tenant_id: str,
        session_id: str,
        event: MetricsEventType,
        metadata: Dict[str, Any],
    ) -> None:
        await self._notify(
            "metrics",
            lambda: self.core_api.record_metrics(
                tenant_id,
                MetricsEvent(session_id=session_id, event=event, metadata=metadata),
            ),
        )

    async def _notify(self, kind: str, send: Callable[[], Awaitable[None]]) -> None:
        try:
            await send()
        except Exception as e:
            # Don't fail the payment if the Core API notification fails
            logger.warning(f"Failed to send {kind} notification to Core API: {e}")
            metrics.track_notification_failure(kind)
