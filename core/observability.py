from logging import ERROR as LOG_ERROR

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from core.config import get_settings


def init_sentry() -> bool:
    """Initialize Sentry if a DSN is configured and we are not under test"""
    settings = get_settings()
    dsn = settings.sentry_dsn

    if not dsn or dsn.startswith("<PUT-YOUR-") or settings.is_test:
        return False

    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(level=None, event_level=LOG_ERROR),
        ],
        traces_sample_rate=settings.sentry_trace_rate,
        environment=settings.environment,
        release=settings.app_version,
    )
    return True
