"""
PayPal adapter for the Orders v2 REST API
"""
from typing import Any, Dict, Optional

import httpx

from checkout.models import PayPalConfig, PayPalMode
from core.exceptions import PaymentProviderError
from core.logging import get_logger

SANDBOX_BASE_URL = "https://api-m.sandbox.paypal.com"
LIVE_BASE_URL = "https://api-m.paypal.com"


class PayPalClient:
    """Creates and captures orders with a tenant's PayPal credentials"""

    def __init__(self, config: PayPalConfig, http_client: httpx.AsyncClient):
        self.config = config
        self.client = http_client
        self.base_url = SANDBOX_BASE_URL if config.mode == PayPalMode.SANDBOX else LIVE_BASE_URL
        self.logger = get_logger("gateway.paypal", domain="gateway")

    async def get_access_token(self) -> str:
        """OAuth2 client credentials grant"""
        try:
            response = await self.client.post(
                f"{self.base_url}/v1/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=(self.config.client_id, self.config.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError("paypal", f"Failed to authenticate with PayPal: {e}", status_code=500) from e

        if response.status_code >= 400:
            self.logger.warning(f"PayPal authentication failed with {response.status_code}")
            raise PaymentProviderError("paypal", "Failed to authenticate with PayPal", status_code=500)

        return response.json()["access_token"]

    async def create_order(
        self,
        amount: float,
        currency: str,
        tenant_id: str,
        session_id: Optional[str],
        brand_name: str,
    ) -> Dict[str, Any]:
        """
        Create a CAPTURE intent order

        ``custom_id`` carries ``tenantId:sessionId`` so the capture can be
        traced back to the checkout session.
        """
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {
                        "currency_code": currency.upper(),
                        "value": f"{amount:.2f}",
                    },
                    "custom_id": f"{tenant_id}:{session_id}",
                }
            ],
            "application_context": {
                "brand_name": brand_name,
                "shipping_preference": "NO_SHIPPING",
                "user_action": "PAY_NOW",
            },
        }

        order = await self._authorized_post("/v2/checkout/orders", body, "PayPal order creation failed")
        self.logger.info(f"Created PayPal order {order.get('id')} for tenant {tenant_id}")
        return order

    async def capture_order(self, order_id: str) -> Dict[str, Any]:
        """
        Capture an approved order

        Returns:
            Dict with ``order_id``, ``capture_id``, ``status``, ``amount`` and
            ``currency`` of the first capture
        """
        data = await self._authorized_post(
            f"/v2/checkout/orders/{order_id}/capture",
            None,
            "PayPal capture failed",
        )

        capture: Dict[str, Any] = {}
        units = data.get("purchase_units") or []
        if units:
            captures = (units[0].get("payments") or {}).get("captures") or []
            if captures:
                capture = captures[0]

        amount = capture.get("amount") or {}
        return {
            "order_id": data.get("id"),
            "capture_id": capture.get("id"),
            "status": data.get("status"),
            "amount": float(amount.get("value") or 0),
            "currency": amount.get("currency_code"),
        }

    async def _authorized_post(self, path: str, body: Optional[Dict[str, Any]], failure: str) -> Dict[str, Any]:
        access_token = await self.get_access_token()

        try:
            response = await self.client.post(
                f"{self.base_url}{path}",
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {access_token}",
                },
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError("paypal", f"{failure}: {e}", status_code=500) from e

        if response.status_code >= 400:
            try:
                error = response.json()
            except ValueError:
                error = response.text
            self.logger.error(f"{failure}: {response.status_code}")
            raise PaymentProviderError("paypal", f"{failure}: {error}", status_code=500)

        return response.json()
