"""
Checkout - session state, payment orchestration and domain models

The payment service lives in ``checkout.payments`` and is imported from
there, since it depends on the gateway clients which depend on these models.
"""

from .lifecycle import begin_checkout, complete_payment, prepare_payment
from .models import (
    Cart,
    CartItem,
    CheckoutSession,
    CheckoutStatus,
    Order,
    OrderStatus,
    PaymentMethod,
    ShippingAddress,
    Tenant,
)
from .session import STORAGE_KEY, CheckoutSessionStore, JSONFileStorage, MemoryStorage

__all__ = [
    # Models
    "Tenant",
    "Cart",
    "CartItem",
    "ShippingAddress",
    "CheckoutSession",
    "CheckoutStatus",
    "PaymentMethod",
    "Order",
    "OrderStatus",
    # Session
    "CheckoutSessionStore",
    "MemoryStorage",
    "JSONFileStorage",
    "STORAGE_KEY",
    # Lifecycle
    "begin_checkout",
    "prepare_payment",
    "complete_payment",
]
