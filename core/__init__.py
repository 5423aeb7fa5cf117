"""Core utilities and configuration for FastCheckout"""
from core.config import settings
from core.exceptions import ExternalAPIError, FastCheckoutError, ValidationError
from core.logging import get_logger

__all__ = [
    "settings",
    "get_logger",
    "FastCheckoutError",
    "ValidationError",
    "ExternalAPIError",
]
