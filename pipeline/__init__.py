"""
Request pipeline - tenant-scoped middleware for the checkout API routes

Layers wrap plain async handlers; every rejection is answered with the
standard response envelope.
"""

from .chain import Handler, Middleware, TenantHandler, compose_middleware, conditional
from .middleware import (
    api_key_middleware,
    csrf_middleware,
    extract_tenant_id,
    logging_middleware,
    rate_limit_middleware,
    tenant_middleware,
)
from .rate_limiter import FixedWindowRateLimiter, RateLimitDecision, RateLimitRecord

__all__ = [
    "Handler",
    "TenantHandler",
    "Middleware",
    "compose_middleware",
    "conditional",
    # Layers
    "tenant_middleware",
    "logging_middleware",
    "rate_limit_middleware",
    "csrf_middleware",
    "api_key_middleware",
    "extract_tenant_id",
    # Rate limiting
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitRecord",
]
