"""
Stripe webhook endpoint

Called by Stripe, so it carries no tenant header and no pipeline layers;
the tenant comes from the payment intent metadata instead.
"""
from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import Response

from api.dependencies import get_payment_service
from core.config import get_settings
from core.exceptions import WebhookError
from core.logging import get_logger
from core.responses import api_response, error_response

logger = get_logger(__name__)
router = APIRouter(prefix="/stripe", tags=["webhooks"])


@router.post("/webhook")
async def stripe_webhook(request: Request) -> Response:
    """Verify a Stripe event and relay it to the Core API"""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event_type = await get_payment_service(request).handle_stripe_webhook(
            payload,
            signature,
            get_settings().get_secret("stripe_webhook_secret"),
        )
    except WebhookError as e:
        return error_response(e)

    logger.debug(f"Acknowledged Stripe event {event_type}")
    return api_response({"received": True})
