"""
Main FastAPI application entry point
"""
import asyncio
from contextlib import asynccontextmanager, suppress

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api.analytics import router as analytics_router
from api.health import router as health_router
from api.internal_routes import router as internal_router
from api.payments import router as payments_router
from api.webhooks import router as webhooks_router
from core.config import get_settings, settings
from core.exceptions import FastCheckoutError
from core.logging import get_logger, setup_logging
from core.metrics import get_metrics_response
from core.observability import init_sentry
from core.responses import error_envelope_response, error_response
from gateway.linkbay import LinkBayClient
from gateway.stripe_client import StripeGateway
from pipeline.rate_limiter import FixedWindowRateLimiter
from plugins import initialize_plugins
from plugins.manager import PluginManager

logger = get_logger(__name__)


async def sweep_rate_limits(limiter: FixedWindowRateLimiter, interval: float) -> None:
    """Drop expired rate limit windows until cancelled"""
    while True:
        await asyncio.sleep(interval)
        limiter.sweep()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the process-wide collaborators and tear them down on shutdown"""
    config = get_settings()
    setup_logging()
    init_sentry()

    app.state.http_client = httpx.AsyncClient(timeout=config.request_timeout)
    app.state.core_api = LinkBayClient.from_settings(config, app.state.http_client)
    app.state.stripe_gateway = StripeGateway()
    app.state.rate_limiter = FixedWindowRateLimiter(
        max_requests=config.rate_limit_max_requests,
        window_seconds=config.rate_limit_window_seconds,
        max_entries=config.rate_limit_max_entries,
    )
    app.state.plugin_manager = PluginManager.from_settings(config)
    if config.plugins_enabled:
        initialize_plugins(app.state.plugin_manager)

    sweeper = asyncio.create_task(sweep_rate_limits(app.state.rate_limiter, config.rate_limit_window_seconds))
    logger.info(f"Starting {config.app_name} version={config.app_version} environment={config.environment}")

    try:
        yield
    finally:
        logger.info(f"Shutting down {config.app_name}")
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        await app.state.http_client.aclose()
        app.state.http_client = None
        app.state.core_api = None


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else settings.cors_origins,
    allow_credentials=not settings.is_development,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(FastCheckoutError)
async def fastcheckout_error_handler(request: Request, exc: FastCheckoutError):
    """Handle custom FastCheckout errors"""
    logger.error(f"FastCheckout error - error_code: {exc.error_code}, details: {exc.details}, path: {request.url.path}")
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors"""
    errors = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return error_envelope_response(
        code="VALIDATION_ERROR",
        message="Invalid request",
        status_code=400,
        details={"errors": errors},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.exception(f"Unexpected error - path: {request.url.path}", exc_info=exc)
    return error_envelope_response(
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        status_code=500,
    )


# Custom metrics endpoint
@app.get("/metrics", include_in_schema=False)
async def prometheus_metrics():
    """Expose metrics for Prometheus scraping"""
    if not get_settings().prometheus_enabled:
        return error_envelope_response(code="NOT_FOUND", message="Metrics not enabled", status_code=404)

    metrics_data, content_type = get_metrics_response()
    return Response(content=metrics_data, media_type=content_type)


# Register routers, all under /api
app.include_router(health_router, prefix="/api")
app.include_router(analytics_router, prefix="/api")
app.include_router(payments_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
app.include_router(internal_router, prefix="/api")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
