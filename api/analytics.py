"""
Checkout analytics proxy

GET /api/analytics/checkout?startDate=...&endDate=...
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import Response

from api.dependencies import get_core_api
from core.logging import get_logger
from core.responses import api_response, error_envelope_response
from pipeline.chain import compose_middleware
from pipeline.middleware import logging_middleware, rate_limit_middleware, tenant_middleware

logger = get_logger(__name__)
router = APIRouter(prefix="/analytics", tags=["analytics"])


def parse_iso_datetime(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp, accepting a trailing Z; naive values are UTC"""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def handle_get_analytics(request: Request, tenant_id: str) -> Response:
    start_param = request.query_params.get("startDate")
    end_param = request.query_params.get("endDate")

    if not start_param or not end_param:
        return error_envelope_response(
            code="MISSING_PARAMETERS",
            message="startDate and endDate query parameters are required",
            status_code=400,
        )

    start_date = parse_iso_datetime(start_param)
    end_date = parse_iso_datetime(end_param)

    if start_date is None or end_date is None:
        return error_envelope_response(
            code="INVALID_DATE_FORMAT",
            message="Invalid date format. Use ISO 8601 format",
            status_code=400,
        )

    try:
        analytics = await get_core_api(request).get_checkout_analytics(tenant_id, start_date, end_date)
    except Exception as e:
        logger.error(f"Error fetching analytics: {e}")
        return error_envelope_response(
            code="ANALYTICS_ERROR",
            message=str(e) or "Failed to fetch analytics",
            status_code=500,
        )

    return api_response(analytics.to_wire())


_get_analytics = compose_middleware(logging_middleware, rate_limit_middleware())(tenant_middleware(handle_get_analytics))


@router.get("/checkout")
async def get_checkout_analytics(request: Request) -> Response:
    """Checkout funnel analytics for the tenant in ``X-Tenant-ID``"""
    return await _get_analytics(request)
