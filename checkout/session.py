"""
Checkout session store

A checkout session belongs to one client and is persisted as a single blob
under a fixed key in a key/value storage. Every mutation replaces one field,
refreshes ``updatedAt`` and writes the whole session back.
"""
import json
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Protocol, Union

from pydantic import ValidationError as PydanticValidationError

from checkout.models import (
    Cart,
    CheckoutSession,
    CheckoutStatus,
    PaymentMethod,
    ShippingAddress,
    Tenant,
)
from core.exceptions import CheckoutError
from core.logging import get_logger
from core.utils import calculate_cart_totals, generate_session_id

STORAGE_KEY = "fastcheckout_session"

logger = get_logger("checkout.session", domain="checkout")


class SessionStorage(Protocol):
    """Key/value storage holding JSON-compatible values"""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStorage:
    """In-process storage, mostly for tests and single-shot scripts"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        try:
            item = self._data.get(key)
            return json.loads(item) if item else None
        except ValueError as e:
            logger.error(f"Error reading from storage: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Error saving to storage: {e}")

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JSONFileStorage:
    """Storage backed by one JSON document on disk"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logger.error(f"Error reading from {self.path}: {e}")
            return {}

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving to {self.path}: {e}")


class CheckoutSessionStore:
    """Owns the checkout session of one client for one tenant"""

    def __init__(self, tenant_id: str, storage: SessionStorage, currency: str = "EUR"):
        self.tenant_id = tenant_id
        self.storage = storage
        self.currency = currency
        self._session: Optional[CheckoutSession] = None

    @property
    def session(self) -> Optional[CheckoutSession]:
        return self._session

    def load(self) -> CheckoutSession:
        """Hydrate the persisted session for this tenant, or start a new one"""
        saved = self.storage.get(STORAGE_KEY)
        session = self._hydrate(saved)

        if session is not None and session.tenant_id == self.tenant_id:
            self._session = session
            logger.debug(f"Restored checkout session {session.id}")
        else:
            self._session = self._new_session()
            self._persist()
            logger.info(f"Started checkout session {self._session.id} for tenant {self.tenant_id}")

        return self._session

    def reset(self) -> CheckoutSession:
        """Discard the persisted session and start a fresh one"""
        self.storage.remove(STORAGE_KEY)
        self._session = self._new_session()
        self._persist()
        return self._session

    def update_cart(self, cart: Cart) -> CheckoutSession:
        return self._update(cart=cart)

    def update_shipping_address(self, address: ShippingAddress) -> CheckoutSession:
        return self._update(shipping_address=address)

    def select_payment_method(self, method: PaymentMethod) -> CheckoutSession:
        return self._update(selected_payment_method=PaymentMethod(method))

    def select_shipping_method(self, method_id: str) -> CheckoutSession:
        return self._update(selected_shipping_method=method_id)

    def set_status(self, status: CheckoutStatus) -> CheckoutSession:
        return self._update(status=CheckoutStatus(status))

    def update_metadata(self, metadata: Dict[str, Any]) -> CheckoutSession:
        """Merge ``metadata`` into the session metadata"""
        current = dict(self._require_session().metadata or {})
        current.update(metadata)
        return self._update(metadata=current)

    def recalculate_cart(self, tenant: Tenant, shipping_method_id: Optional[str] = None) -> CheckoutSession:
        """
        Recompute cart totals for ``tenant``

        Shipping is the price of the selected method, or zero when the
        subtotal reaches the tenant's free shipping threshold.
        """
        session = self._require_session()
        method_id = shipping_method_id or session.selected_shipping_method

        shipping_cost = 0.0
        if method_id:
            method = tenant.shipping_config.get_method(method_id)
            if method is None:
                raise CheckoutError(f"Unknown shipping method: {method_id}", shipping_method=method_id)
            shipping_cost = method.price

        threshold = tenant.shipping_config.free_shipping_threshold
        subtotal = calculate_cart_totals(session.cart.items, tenant.tax_rate, 0)["subtotal"]
        if threshold is not None and subtotal >= threshold:
            shipping_cost = 0.0

        totals = calculate_cart_totals(session.cart.items, tenant.tax_rate, shipping_cost)
        cart = session.cart.model_copy(update={**totals, "currency": tenant.currency})

        changes: Dict[str, Any] = {"cart": cart}
        if method_id:
            changes["selected_shipping_method"] = method_id
        return self._update(**changes)

    def _update(self, **changes) -> CheckoutSession:
        session = self._require_session()
        self._session = session.model_copy(update={**changes, "updated_at": datetime.now(timezone.utc)})
        self._persist()
        return self._session

    def _require_session(self) -> CheckoutSession:
        if self._session is None:
            raise CheckoutError("Checkout session is not loaded", tenant_id=self.tenant_id)
        return self._session

    def _persist(self) -> None:
        self.storage.set(STORAGE_KEY, self._session.to_wire())

    def _new_session(self) -> CheckoutSession:
        return CheckoutSession(
            id=generate_session_id(),
            tenant_id=self.tenant_id,
            cart=Cart.empty(self.currency),
            status=CheckoutStatus.PENDING,
        )

    @staticmethod
    def _hydrate(saved: Any) -> Optional[CheckoutSession]:
        if not saved:
            return None
        try:
            return CheckoutSession.model_validate(saved)
        except PydanticValidationError as e:
            logger.warning(f"Discarding unreadable checkout session: {e.error_count()} errors")
            return None
