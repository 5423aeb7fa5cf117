"""
Core utility functions used across packages
"""
import asyncio
import re
import secrets
import string
import time
from decimal import ROUND_HALF_UP, Decimal
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Tuple, Type, TypeVar

T = TypeVar("T")

TENANT_ID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)

_BASE36_ALPHABET = string.digits + string.ascii_lowercase

# Characters escaped by sanitize_input, in replacement order
_HTML_ESCAPES = (
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£", "CHF": "CHF", "JPY": "¥"}


def round_money(value: Any, places: int = 2) -> float:
    """Round half-up to a fixed number of decimal places"""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def to_minor_units(amount: float) -> int:
    """Convert a decimal amount to integer cents"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_cart_totals(
    items: Iterable[Any],
    tax_rate: float,
    shipping_cost: float,
) -> Dict[str, float]:
    """
    Calculate cart totals including tax and shipping

    Items may be mappings or objects exposing ``price`` and ``quantity``.
    Tax and total are computed from the unrounded subtotal and rounded
    half-up to two decimals at the end.
    """
    subtotal = Decimal("0")
    for item in items:
        if isinstance(item, Mapping):
            price, quantity = item["price"], item["quantity"]
        else:
            price, quantity = item.price, item.quantity
        subtotal += Decimal(str(price)) * Decimal(str(quantity))

    tax = subtotal * Decimal(str(tax_rate))
    shipping = Decimal(str(shipping_cost))
    total = subtotal + tax + shipping

    return {
        "subtotal": round_money(subtotal),
        "tax": round_money(tax),
        "shipping": round_money(shipping),
        "total": round_money(total),
    }


def format_currency(amount: float, currency: str, locale: str = "it-IT") -> str:
    """Format an amount the way the checkout pages display it"""
    currency = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, fraction = f"{abs(value):.2f}".split(".")
    grouped = f"{int(whole):,}"

    if locale.startswith("en"):
        return f"{sign}{symbol}{grouped}.{fraction}"

    # it-IT, de-DE and friends: dot thousands, comma decimals, trailing symbol
    grouped = grouped.replace(",", ".")
    return f"{sign}{grouped},{fraction} {symbol}"


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36"""
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    """Random lowercase base 36 string"""
    return "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(length))


def generate_order_number(tenant_id: str) -> str:
    """Generate unique order number: TENA-<time36>-<random5>"""
    timestamp = to_base36(int(time.time() * 1000)).upper()
    random_part = random_base36(5).upper()
    tenant_prefix = tenant_id[:4].upper()
    return f"{tenant_prefix}-{timestamp}-{random_part}"


def generate_session_id() -> str:
    """Generate checkout session id: <epoch-ms>-<random>"""
    return f"{int(time.time() * 1000)}-{random_base36(13)}"


def sanitize_input(text: str) -> str:
    """Escape the characters that let user input break out of HTML"""
    for char, replacement in _HTML_ESCAPES:
        text = text.replace(char, replacement)
    return text


def is_valid_tenant_id(value: Optional[str]) -> bool:
    """Check for the canonical 8-4-4-4-12 hexadecimal UUID form"""
    return bool(value) and TENANT_ID_PATTERN.fullmatch(value) is not None


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """
    Await ``fn()`` up to ``max_retries`` times with exponential backoff

    Args:
        fn: Zero-argument coroutine factory, called once per attempt
        max_retries: Total number of attempts
        base_delay: Delay in seconds before the second attempt, doubled each time
        exceptions: Exception types that trigger another attempt

    Returns:
        The first successful result

    Raises:
        The last error once every attempt has failed
    """
    last_exception: Optional[BaseException] = None

    for attempt in range(max_retries):
        try:
            return await fn()
        except exceptions as e:
            last_exception = e
            if attempt < max_retries - 1:
                await asyncio.sleep(base_delay * (2**attempt))

    if last_exception is None:
        raise ValueError("max_retries must be at least 1")
    raise last_exception


def retry_async(
    max_attempts: int = 3,
    delay: float = 1.0,
    exceptions: tuple = (Exception,),
):
    """Decorator for retrying async functions with exponential backoff"""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await retry_with_backoff(
                lambda: func(*args, **kwargs),
                max_retries=max_attempts,
                base_delay=delay,
                exceptions=exceptions,
            )

        return wrapper

    return decorator
