"""
Payment routes for Stripe and PayPal

Each route runs behind logging, rate limiting, optional CSRF protection and
tenant resolution, then hands the parsed body to the payment service.
"""
from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import Response

from api.dependencies import get_payment_service, parse_body
from checkout.schemas import CapturePayPalOrderRequest, CreatePaymentIntentRequest, CreatePayPalOrderRequest
from core.config import get_settings
from core.exceptions import (
    CheckoutValidationError,
    PaymentProviderError,
    PluginExecutionError,
    ProviderNotEnabledError,
    ValidationError,
)
from core.logging import get_logger
from core.responses import api_response, error_envelope_response, error_response
from pipeline.chain import compose_middleware, conditional
from pipeline.middleware import csrf_middleware, logging_middleware, rate_limit_middleware, tenant_middleware

logger = get_logger(__name__)
router = APIRouter(tags=["payments"])

# Failures the client can act on are answered with their own code
CLIENT_ERRORS = (
    ProviderNotEnabledError,
    CheckoutValidationError,
    ValidationError,
    PaymentProviderError,
    PluginExecutionError,
)


def _csrf_enabled() -> bool:
    return get_settings().csrf_enabled


payment_pipeline = compose_middleware(
    logging_middleware,
    rate_limit_middleware(),
    conditional(csrf_middleware, _csrf_enabled),
)


async def handle_create_payment_intent(request: Request, tenant_id: str) -> Response:
    try:
        body = await parse_body(request, CreatePaymentIntentRequest)
        result = await get_payment_service(request).create_stripe_payment_intent(tenant_id, body)
    except CLIENT_ERRORS as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error creating payment intent: {e}")
        return error_envelope_response(
            code="INTERNAL_ERROR",
            message="Failed to create payment intent",
            status_code=500,
            details=str(e) or "Unknown error",
        )

    return api_response(result)


async def handle_create_paypal_order(request: Request, tenant_id: str) -> Response:
    try:
        body = await parse_body(request, CreatePayPalOrderRequest)
        result = await get_payment_service(request).create_paypal_order(tenant_id, body)
    except CLIENT_ERRORS as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error creating PayPal order: {e}")
        return error_envelope_response(
            code="PAYPAL_ERROR",
            message=str(e) or "Failed to create PayPal order",
            status_code=500,
        )

    return api_response(result)


async def handle_capture_paypal_order(request: Request, tenant_id: str) -> Response:
    try:
        body = await parse_body(request, CapturePayPalOrderRequest)
        result = await get_payment_service(request).capture_paypal_order(tenant_id, body)
    except CLIENT_ERRORS as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error capturing PayPal order: {e}")
        return error_envelope_response(
            code="PAYPAL_ERROR",
            message=str(e) or "Failed to capture PayPal order",
            status_code=500,
        )

    return api_response(result)


_create_payment_intent = payment_pipeline(tenant_middleware(handle_create_payment_intent))
_create_paypal_order = payment_pipeline(tenant_middleware(handle_create_paypal_order))
_capture_paypal_order = payment_pipeline(tenant_middleware(handle_capture_paypal_order))


@router.post("/stripe/payment-intent")
async def create_payment_intent(request: Request) -> Response:
    """Create a Stripe payment intent; returns ``clientSecret`` and ``paymentIntentId``"""
    return await _create_payment_intent(request)


@router.post("/paypal/create-order")
async def create_paypal_order(request: Request) -> Response:
    """Create a PayPal order; returns ``orderId``"""
    return await _create_paypal_order(request)


@router.post("/paypal/capture-order")
async def capture_paypal_order(request: Request) -> Response:
    """Capture an approved PayPal order; returns ``captureId`` and ``status``"""
    return await _capture_paypal_order(request)
