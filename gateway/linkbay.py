"""
LinkBay Core API client

Every tenant lookup, order write, webhook relay and metrics record goes
through here. Responses use the same ``{success, data, error}`` envelope as
this service.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import httpx

from checkout.models import (
    CheckoutAnalytics,
    MetricsEvent,
    Order,
    OrderStatus,
    Tenant,
    WebhookEvent,
)
from core.config import Settings
from core.exceptions import CoreAPIError, TransientCoreAPIError
from core.logging import get_logger
from core.utils import retry_with_backoff

RETRYABLE_ERRORS = (httpx.TransportError, TransientCoreAPIError)


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _payload(value: Any) -> Any:
    if hasattr(value, "to_wire"):
        return value.to_wire()
    return value


class LinkBayClient:
    """Async client for the Core API"""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        http_client: httpx.AsyncClient,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or ""
        self.client = http_client
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.logger = get_logger("gateway.linkbay", domain="gateway")

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> "LinkBayClient":
        return cls(
            base_url=settings.linkbay_api_url,
            api_key=settings.get_secret("linkbay_api_key"),
            http_client=http_client,
            max_retries=settings.core_api_max_retries,
            base_delay=settings.core_api_retry_base_delay,
        )

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-Key": self.api_key,
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """
        Send one request, retrying transport failures and 5xx replies

        Returns:
            The ``data`` member of the Core API envelope

        Raises:
            CoreAPIError: non-2xx reply, or an envelope with ``success: false``
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        async def attempt() -> httpx.Response:
            response = await self.client.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._get_headers(),
            )
            if response.status_code >= 500:
                raise TransientCoreAPIError(
                    f"{response.status_code} - {self._error_message(response)}",
                    status_code=response.status_code,
                )
            return response

        try:
            response = await retry_with_backoff(
                attempt,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                exceptions=RETRYABLE_ERRORS,
            )
        except httpx.TransportError as e:
            self.logger.error(f"Core API unreachable: {method} {endpoint}: {e}")
            raise CoreAPIError(f"Request failed - {e}") from e

        if response.status_code >= 400:
            message = self._error_message(response)
            self.logger.warning(f"Core API {method} {endpoint} returned {response.status_code}: {message}")
            raise CoreAPIError(f"{response.status_code} - {message}", status_code=response.status_code)

        try:
            result = response.json()
        except ValueError as e:
            raise CoreAPIError("Invalid JSON response", status_code=response.status_code) from e

        if not isinstance(result, dict):
            raise CoreAPIError("Unexpected response shape", status_code=response.status_code)

        if not result.get("success"):
            error = result.get("error") or {}
            raise CoreAPIError(
                f"{error.get('code')} - {error.get('message')}",
                status_code=response.status_code,
                code=error.get("code"),
            )

        return result.get("data")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("message") if isinstance(body, dict) else None
        return message or response.reason_phrase or f"HTTP {response.status_code}"

    async def get_tenant(self, tenant_id: str) -> Tenant:
        """Get tenant configuration by ID"""
        data = await self._request("GET", f"/tenants/{tenant_id}")
        return Tenant.model_validate(data)

    async def create_order(self, order: Union[Order, Dict[str, Any]]) -> Dict[str, Any]:
        payload = _payload(order)
        if isinstance(payload, dict):
            payload = {k: v for k, v in payload.items() if k not in ("id", "createdAt", "updatedAt")}
        return await self._request("POST", "/orders", json=payload)

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Dict[str, Any]:
        return await self._request("PATCH", f"/orders/{order_id}/status", json={"status": OrderStatus(status).value})

    async def send_webhook_event(self, event: Union[WebhookEvent, Dict[str, Any]]) -> None:
        """Relay a payment or order event to the Core API"""
        await self._request("POST", "/webhooks/events", json=_payload(event))

    async def get_product(self, tenant_id: str, product_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/tenants/{tenant_id}/products/{product_id}")

    async def validate_cart(self, tenant_id: str, items: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        """Check cart items against current prices and availability"""
        payload: List[Dict[str, Any]] = [
            {"productId": item["productId"], "quantity": item["quantity"]} for item in items
        ]
        return await self._request("POST", f"/tenants/{tenant_id}/cart/validate", json={"items": payload})

    async def record_metrics(self, tenant_id: str, event: Union[MetricsEvent, Dict[str, Any]]) -> None:
        await self._request("POST", f"/tenants/{tenant_id}/metrics", json=_payload(event))

    async def get_checkout_analytics(
        self,
        tenant_id: str,
        start_date: datetime,
        end_date: datetime,
    ) -> CheckoutAnalytics:
        params = {"startDate": _iso(start_date), "endDate": _iso(end_date)}
        data = await self._request("GET", f"/tenants/{tenant_id}/analytics/checkout", params=params)
        return CheckoutAnalytics.model_validate(data or {})
