"""
Stripe adapter

Payment intents are created with the tenant's own secret key, so no
process-wide API key is set on the SDK. SDK calls block, and run on a worker
thread to keep the event loop free.
"""
import asyncio
from typing import Any, Dict, Mapping, Optional

import stripe

from core.exceptions import PaymentProviderError, WebhookError
from core.logging import get_logger
from core.utils import to_minor_units

logger = get_logger("gateway.stripe", domain="gateway")


class StripeGateway:
    """Thin async wrapper around the stripe SDK"""

    def __init__(self, api_version: Optional[str] = None):
        self.api_version = api_version

    async def create_payment_intent(
        self,
        secret_key: str,
        amount: float,
        currency: str,
        metadata: Optional[Mapping[str, str]] = None,
        tenant_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a payment intent with automatic payment methods

        Args:
            secret_key: Tenant Stripe secret key
            amount: Amount in major units, converted to cents half-up
            currency: ISO 4217 code, sent lowercase
            metadata: Extra metadata; ``tenantId`` is always included
            tenant_id: Owning tenant

        Returns:
            Dict with ``client_secret`` and ``payment_intent_id``

        Raises:
            PaymentProviderError: Stripe rejected the request
        """
        intent_metadata = dict(metadata or {})
        if tenant_id:
            intent_metadata["tenantId"] = tenant_id

        params = {
            "amount": to_minor_units(amount),
            "currency": currency.lower(),
            "automatic_payment_methods": {"enabled": True},
            "metadata": intent_metadata,
            "api_key": secret_key,
        }
        if self.api_version:
            params["stripe_version"] = self.api_version

        try:
            intent = await asyncio.to_thread(stripe.PaymentIntent.create, **params)
        except stripe.error.StripeError as e:
            message = getattr(e, "user_message", None) or str(e)
            logger.error(f"Error creating payment intent: {message}")
            raise PaymentProviderError("stripe", message) from e

        logger.info(f"Created payment intent {intent['id']} for {params['amount']} {params['currency']}")
        return {
            "client_secret": intent["client_secret"],
            "payment_intent_id": intent["id"],
        }

    def construct_event(self, payload: bytes, signature: str, webhook_secret: str) -> Any:
        """
        Verify a webhook signature and parse the event

        Raises:
            WebhookError: signature or payload is invalid
        """
        try:
            return stripe.Webhook.construct_event(payload, signature, webhook_secret)
        except (ValueError, stripe.error.SignatureVerificationError) as e:
            logger.warning(f"Invalid webhook signature: {e}")
            raise WebhookError(str(e) or "Invalid webhook signature") from e
