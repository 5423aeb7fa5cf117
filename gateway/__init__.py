"""
Gateway - clients for every external service

The Core API client and the payment processor adapters. No other package
makes outbound HTTP or SDK calls.
"""

from .linkbay import LinkBayClient
from .paypal_client import PayPalClient
from .stripe_client import StripeGateway

__all__ = [
    "LinkBayClient",
    "PayPalClient",
    "StripeGateway",
]
