"""
Request bodies for the payment API routes
"""
from typing import Dict, Optional

from pydantic import ConfigDict, Field, field_validator

from checkout.models import CamelModel


class CreatePaymentIntentRequest(CamelModel):
    """Body of POST /api/stripe/payment-intent"""

    amount: float = Field(..., gt=0, description="Amount in major currency units")
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 code")
    metadata: Optional[Dict[str, str]] = Field(default=None, description="Forwarded to Stripe")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "amount": 47.7,
                "currency": "EUR",
                "metadata": {"sessionId": "1700000000000-abc123"},
            }
        }
    )

    @property
    def session_id(self) -> str:
        return (self.metadata or {}).get("sessionId") or "unknown"


class CreatePayPalOrderRequest(CamelModel):
    """Body of POST /api/paypal/create-order"""

    amount: float = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)
    session_id: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper()


class CapturePayPalOrderRequest(CamelModel):
    """Body of POST /api/paypal/capture-order"""

    order_id: str = Field(..., min_length=1)
    session_id: Optional[str] = None
