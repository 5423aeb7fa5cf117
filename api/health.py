"""
Health check endpoint
"""
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.logging import get_logger
from core.responses import api_response, error_envelope_response, utc_timestamp

logger = get_logger(__name__)
router = APIRouter(tags=["health"])

_START_TIME = time.monotonic()


@router.get("/health")
async def health_check() -> JSONResponse:
    """
    Liveness plus the configuration status of each external service

    No outbound calls are made; a service is reported ``configured`` when its
    credentials are present.
    """
    try:
        settings = get_settings()
        return api_response(
            {
                "status": "healthy",
                "timestamp": utc_timestamp(),
                "uptime": round(time.monotonic() - _START_TIME, 3),
                "environment": settings.environment,
                "version": settings.app_version,
                "services": settings.service_status(),
            }
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return error_envelope_response(
            code="HEALTH_CHECK_FAILED",
            message=str(e) or "Health check failed",
            status_code=503,
        )
