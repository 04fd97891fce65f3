from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from repofolio.domain.entities import PaymentOrder
from repofolio.domain.errors import PaymentError
from repofolio.domain.interfaces import IPaymentGateway

log = logging.getLogger(__name__)

PAYPAL_LIVE_URL    = "https://api-m.paypal.com"
PAYPAL_SANDBOX_URL = "https://api-m.sandbox.paypal.com"


class PayPalClient(IPaymentGateway):
    """
    Thin adapter over PayPal's Orders v2 REST API.

    Authenticates every call with HTTP Basic (client id / secret), the
    same way the checkout server always has. Calls are never retried:
    creating or capturing an order twice is not harmless.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        client_id: str,
        secret: str,
        base_url: str = PAYPAL_LIVE_URL,
    ) -> None:
        self._client   = client
        self._auth     = httpx.BasicAuth(client_id, secret)
        self._base_url = base_url.rstrip("/")

    async def _post(self, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.post(
                url,
                auth=self._auth,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=30.0,
            )
        except httpx.RequestError as exc:
            raise PaymentError(None, f"POST {path} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}

        if not response.is_success:
            log.warning("PayPal POST %s -> %d: %s", path, response.status_code, body)
            raise PaymentError(response.status_code, body)
        return body

    async def create_order(self, amount: str, currency: str, description: str) -> PaymentOrder:
        body = await self._post(
            "/v2/checkout/orders",
            {
                "intent": "CAPTURE",
                "purchase_units": [
                    {
                        "amount":      {"currency_code": currency, "value": amount},
                        "description": description,
                    }
                ],
            },
        )
        log.info("Created PayPal order %s (%s %s)", body.get("id"), amount, currency)
        return _to_order(body)

    async def capture_order(self, order_id: str) -> PaymentOrder:
        body = await self._post(f"/v2/checkout/orders/{quote(order_id, safe='')}/capture")
        log.info("Captured PayPal order %s -> %s", order_id, body.get("status"))
        return _to_order(body, fallback_id=order_id)


def _to_order(body: dict[str, Any], fallback_id: str | None = None) -> PaymentOrder:
    order_id = body.get("id") or fallback_id
    if not order_id:
        raise PaymentError(None, "PayPal response carried no order id")
    return PaymentOrder(id=order_id, status=str(body.get("status", "UNKNOWN")), raw=body)
