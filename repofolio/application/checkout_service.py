from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from repofolio.domain.entities import PaymentOrder, UserProfile
from repofolio.domain.errors import AlreadyPremium, PaymentError, ProfileNotFound
from repofolio.domain.interfaces import IPaymentGateway, IProfileStore

log = logging.getLogger(__name__)

DEFAULT_PRICE       = "9.99"
CURRENCY            = "USD"
ORDER_DESCRIPTION   = "Portfolio Generator Premium Access"
COMPLETED           = "COMPLETED"


def format_amount(amount: str | int | float | Decimal) -> str:
    """Normalise an amount to PayPal's two-decimal string, rejecting junk."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be positive: {amount!r}")
    return str(value.quantize(Decimal("0.01")))


class CheckoutService:
    """
    One-off premium upgrade through PayPal.

    create_order() starts a checkout, capture_order() finishes it and,
    only when PayPal reports the capture COMPLETED, flips the profile
    to premium.
    """

    def __init__(self, profiles: IProfileStore, gateway: IPaymentGateway) -> None:
        self._profiles = profiles
        self._gateway  = gateway

    def _require_profile(self, user_id: str) -> UserProfile:
        profile = self._profiles.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound(user_id)
        return profile

    async def create_order(self, user_id: str, amount: str = DEFAULT_PRICE) -> PaymentOrder:
        value   = format_amount(amount)
        profile = self._require_profile(user_id)
        if profile.is_premium:
            raise AlreadyPremium(user_id)

        order = await self._gateway.create_order(value, CURRENCY, ORDER_DESCRIPTION)
        log.info("Checkout started | user=%s | order=%s | %s %s", user_id, order.id, value, CURRENCY)
        return order

    async def capture_order(self, user_id: str, order_id: str) -> UserProfile:
        self._require_profile(user_id)

        order = await self._gateway.capture_order(order_id)
        if order.status != COMPLETED:
            log.warning("Capture of order %s for %s ended as %s", order_id, user_id, order.status)
            raise PaymentError(None, f"Order {order_id} status is {order.status}")

        return self._profiles.mark_premium(user_id, order_id)
