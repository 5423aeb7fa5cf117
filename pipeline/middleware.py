"""
Tenant-scoped request middleware

Each layer is a plain function wrapping a handler, so layers can be applied
directly (``logging_middleware(tenant_middleware(handler))``) or through
``compose_middleware``. Layers that reject a request answer with the standard
envelope and never call the wrapped handler.
"""
import secrets
import time
from functools import wraps
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from core.config import get_settings
from core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    CSRFError,
    InvalidTenantError,
    MissingTenantError,
    RateLimitError,
)
from core.logging import get_logger
from core.metrics import metrics
from core.responses import error_envelope_response, error_response
from core.utils import is_valid_tenant_id
from pipeline.chain import Handler, Middleware, TenantHandler
from pipeline.rate_limiter import FixedWindowRateLimiter

logger = get_logger("pipeline.middleware", domain="pipeline")

TENANT_HEADER = "x-tenant-id"
FORWARDED_FOR_HEADER = "x-forwarded-for"
CSRF_HEADER = "x-csrf-token"
CSRF_COOKIE = "csrf-token"
API_KEY_HEADER = "x-api-key"

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
ANONYMOUS = "anonymous"


def extract_tenant_id(request: Request) -> Optional[str]:
    """Raw tenant header value, unvalidated"""
    return request.headers.get(TENANT_HEADER)


def client_address(request: Request) -> Optional[str]:
    """First address of X-Forwarded-For, if present"""
    forwarded = request.headers.get(FORWARDED_FOR_HEADER)
    if not forwarded:
        return None
    address = forwarded.split(",")[0].strip()
    return address or None


def rate_limit_key(request: Request) -> str:
    """Tenant id, else forwarded client address, else a shared anonymous token"""
    return extract_tenant_id(request) or client_address(request) or ANONYMOUS


def tenant_middleware(handler: TenantHandler) -> Handler:
    """
    Resolve and validate the tenant, then call ``handler(request, tenant_id)``

    Any exception escaping the handler becomes a 500 INTERNAL_ERROR reply.
    """

    @wraps(handler)
    async def wrapped(request: Request) -> Response:
        tenant_id = extract_tenant_id(request)

        if not tenant_id:
            return error_response(MissingTenantError())

        if not is_valid_tenant_id(tenant_id):
            return error_response(InvalidTenantError())

        try:
            return await handler(request, tenant_id)
        except Exception as e:
            logger.exception(f"Error in tenant middleware for tenant {tenant_id}: {e}")
            return error_envelope_response(
                code="INTERNAL_ERROR",
                message="An internal error occurred",
                status_code=500,
                details=str(e) or e.__class__.__name__,
            )

    return wrapped


def rate_limit_middleware(limiter: Optional[FixedWindowRateLimiter] = None) -> Middleware:
    """
    Build a fixed window rate limiting layer

    Without an explicit limiter the process-wide one on ``app.state`` is used,
    looked up per request.
    """

    def apply(handler: Handler) -> Handler:
        @wraps(handler)
        async def wrapped(request: Request) -> Response:
            active = limiter if limiter is not None else _app_rate_limiter(request)
            decision = active.hit(rate_limit_key(request))

            if not decision.allowed:
                metrics.track_rate_limited()
                return error_response(RateLimitError(retry_after=decision.retry_after))

            return await handler(request)

        return wrapped

    return apply


def csrf_middleware(handler: Handler) -> Handler:
    """Double-submit check: CSRF header must equal the CSRF cookie"""

    @wraps(handler)
    async def wrapped(request: Request) -> Response:
        if request.method.upper() in SAFE_METHODS:
            return await handler(request)

        header_token = request.headers.get(CSRF_HEADER)
        cookie_token = request.cookies.get(CSRF_COOKIE)

        if not header_token or not cookie_token or not _tokens_match(header_token, cookie_token):
            logger.warning(f"CSRF validation failed for {request.method} {request.url.path}")
            return error_response(CSRFError())

        return await handler(request)

    return wrapped


def api_key_middleware(handler: Handler) -> Handler:
    """Static API key check against the configured Core API key"""

    @wraps(handler)
    async def wrapped(request: Request) -> Response:
        provided = request.headers.get(API_KEY_HEADER)
        expected = get_settings().get_secret("linkbay_api_key")

        if not provided or not expected or not _tokens_match(provided, expected):
            logger.warning(f"Rejected API key for {request.method} {request.url.path}")
            return error_response(AuthenticationError())

        return await handler(request)

    return wrapped


def logging_middleware(handler: Handler) -> Handler:
    """Audit trail: one entry before the handler runs and one after"""

    @wraps(handler)
    async def wrapped(request: Request) -> Response:
        start_time = time.perf_counter()
        entry = {
            "method": request.method,
            "url": str(request.url),
            "tenant_id": extract_tenant_id(request),
            "user_agent": request.headers.get("user-agent"),
            "ip": client_address(request) or "unknown",
        }
        logger.info(f"[REQUEST] {entry['method']} {entry['url']}", extra=entry)

        status_code = 500
        try:
            response = await handler(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time
            logger.info(
                f"[RESPONSE] {entry['method']} {entry['url']} status={status_code} duration={duration * 1000:.0f}ms",
                extra={**entry, "status": status_code, "duration_ms": round(duration * 1000, 2)},
            )
            metrics.track_request(
                method=request.method,
                endpoint=request.url.path,
                status=status_code,
                duration=duration,
            )

    return wrapped


def _app_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise ConfigurationError("Rate limiter is not initialised", setting="rate_limiter")
    return limiter


def _tokens_match(provided: str, expected: str) -> bool:
    # compare_digest rejects non-ASCII str, headers arrive latin-1 decoded
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
