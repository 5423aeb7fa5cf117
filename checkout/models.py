"""
Checkout domain models

Pydantic models for tenants, carts, checkout sessions and the payloads
exchanged with the Core API. Field names are snake_case in Python and
camelCase on the wire.
"""
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from core.utils import is_valid_tenant_id

PHONE_PATTERN = re.compile(r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$")
BRAND_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting either spelling"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-compatible camelCase dict, unset optionals left out"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PaymentMethod(str, Enum):
    """Supported payment processors"""

    STRIPE = "stripe"
    PAYPAL = "paypal"


class CheckoutStatus(str, Enum):
    """Checkout session status (transitions are not enforced)"""

    PENDING = "pending"
    PROCESSING = "processing"
    PAYMENT_REQUIRED = "payment_required"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


class OrderStatus(str, Enum):
    """Order status as tracked by the Core API"""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class WebhookEventType(str, Enum):
    """Event types forwarded to the Core API"""

    CHECKOUT_COMPLETED = "checkout.completed"
    PAYMENT_SUCCEEDED = "payment.succeeded"
    PAYMENT_FAILED = "payment.failed"
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"


class MetricsEventType(str, Enum):
    """Checkout funnel events recorded with the Core API"""

    STARTED = "started"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    PAYMENT_FAILED = "payment_failed"


# Tenant configuration


class StripeConfig(CamelModel):
    public_key: str
    secret_key: str
    webhook_secret: str
    enabled: bool = False

    @field_validator("public_key")
    @classmethod
    def validate_public_key(cls, v):
        if not v.startswith("pk_"):
            raise ValueError("Stripe public key must start with pk_")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v):
        if not v.startswith("sk_"):
            raise ValueError("Stripe secret key must start with sk_")
        return v

    @field_validator("webhook_secret")
    @classmethod
    def validate_webhook_secret(cls, v):
        if not v.startswith("whsec_"):
            raise ValueError("Stripe webhook secret must start with whsec_")
        return v


class PayPalMode(str, Enum):
    SANDBOX = "sandbox"
    LIVE = "live"


class PayPalConfig(CamelModel):
    client_id: str
    client_secret: str
    mode: PayPalMode = PayPalMode.SANDBOX
    enabled: bool = False


class ShippingMethod(CamelModel):
    id: str
    name: str
    price: float = Field(ge=0)
    estimated_days: str


class ShippingConfig(CamelModel):
    methods: List[ShippingMethod] = Field(default_factory=list)
    free_shipping_threshold: Optional[float] = Field(default=None, ge=0)

    def get_method(self, method_id: str) -> Optional[ShippingMethod]:
        return next((method for method in self.methods if method.id == method_id), None)


class Tenant(CamelModel):
    """Merchant configuration, fetched from the Core API on every request"""

    id: str
    name: str = Field(min_length=1)
    logo: Optional[str] = None
    brand_color: Optional[str] = None
    enabled_payment_methods: List[PaymentMethod] = Field(min_length=1)
    currency: str = Field(min_length=3, max_length=3)
    tax_rate: float = Field(ge=0, le=1)
    shipping_config: ShippingConfig = Field(default_factory=ShippingConfig)
    stripe_config: Optional[StripeConfig] = None
    paypal_config: Optional[PayPalConfig] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        if not is_valid_tenant_id(v):
            raise ValueError("Tenant id must be a valid UUID")
        return v

    @field_validator("brand_color")
    @classmethod
    def validate_brand_color(cls, v):
        if v is not None and not BRAND_COLOR_PATTERN.match(v):
            raise ValueError("Brand color must be a #RRGGBB hex value")
        return v

    @property
    def stripe_enabled(self) -> bool:
        return self.stripe_config is not None and self.stripe_config.enabled

    @property
    def paypal_enabled(self) -> bool:
        return self.paypal_config is not None and self.paypal_config.enabled


# Cart


class CartItem(CamelModel):
    id: str
    product_id: str
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(gt=0)
    quantity: int = Field(ge=1)
    image_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class Cart(CamelModel):
    items: List[CartItem] = Field(default_factory=list)
    subtotal: float = Field(default=0, ge=0)
    tax: float = Field(default=0, ge=0)
    shipping: float = Field(default=0, ge=0)
    total: float = Field(default=0, ge=0)
    currency: str = Field(default="EUR", min_length=3, max_length=3)

    @classmethod
    def empty(cls, currency: str = "EUR") -> "Cart":
        return cls(currency=currency)


# Shipping address


def _check_length(value: str, minimum: int, maximum: int, message: str) -> str:
    if len(value) < minimum:
        raise ValueError(message)
    if len(value) > maximum:
        raise ValueError(f"Must be at most {maximum} characters")
    return value


class ShippingAddress(CamelModel):
    """Customer shipping address with user-facing validation messages"""

    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    address_line1: str
    address_line2: Optional[str] = Field(default=None, max_length=100)
    city: str
    state: str
    postal_code: str
    country: str

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v):
        return _check_length(v, 2, 50, "First name must contain at least 2 characters")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v):
        return _check_length(v, 2, 50, "Last name must contain at least 2 characters")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if not PHONE_PATTERN.match(v):
            raise ValueError("Invalid phone number")
        return v

    @field_validator("address_line1")
    @classmethod
    def validate_address_line1(cls, v):
        return _check_length(v, 5, 100, "Address must contain at least 5 characters")

    @field_validator("city")
    @classmethod
    def validate_city(cls, v):
        return _check_length(v, 2, 50, "City must contain at least 2 characters")

    @field_validator("state")
    @classmethod
    def validate_state(cls, v):
        return _check_length(v, 2, 50, "State/Province must contain at least 2 characters")

    @field_validator("postal_code")
    @classmethod
    def validate_postal_code(cls, v):
        return _check_length(v, 3, 10, "Invalid postal code")

    @field_validator("country")
    @classmethod
    def validate_country(cls, v):
        if len(v) != 2:
            raise ValueError("Country code must be 2 characters (ISO 3166-1 alpha-2)")
        return v.upper()


# Session and order


class CheckoutSession(CamelModel):
    """Client-owned checkout state, persisted as one blob"""

    id: str
    tenant_id: str
    cart: Cart = Field(default_factory=Cart)
    shipping_address: Optional[ShippingAddress] = None
    selected_shipping_method: Optional[str] = None
    selected_payment_method: Optional[PaymentMethod] = None
    status: CheckoutStatus = CheckoutStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    metadata: Optional[Dict[str, Any]] = None


class Order(CamelModel):
    """Order payload sent to the Core API"""

    id: Optional[str] = None
    tenant_id: str
    session_id: str
    order_number: str
    cart: Cart
    shipping_address: ShippingAddress
    shipping_method: ShippingMethod
    payment_method: PaymentMethod
    payment_intent_id: str
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# Core API events


class WebhookEvent(CamelModel):
    type: WebhookEventType
    tenant_id: str
    data: Any = None


class MetricsEvent(CamelModel):
    session_id: str
    event: MetricsEventType
    duration: Optional[float] = None
    step: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class CheckoutAnalytics(CamelModel):
    model_config = ConfigDict(extra="allow")

    total_sessions: int = 0
    completed_checkouts: int = 0
    conversion_rate: float = 0
    average_completion_time: float = 0
    abandonment_rate: float = 0
    revenue_by_payment_method: Dict[str, float] = Field(default_factory=dict)
