import asyncio
import json

import httpx
import pytest

from conftest import InMemoryProfileStore, StubGateway, mock_client, profile
from repofolio.application.checkout_service import CheckoutService, format_amount
from repofolio.domain.errors import AlreadyPremium, PaymentError, ProfileNotFound
from repofolio.infrastructure.paypal_client import PayPalClient


def test_create_order_for_free_user() -> None:
    gateway = StubGateway()
    service = CheckoutService(InMemoryProfileStore(profile()), gateway)

    order = asyncio.run(service.create_order("user-1", "9.9"))

    assert order.id == "ORDER-1"
    assert gateway.created == [("9.90", "USD", "Portfolio Generator Premium Access")]


def test_create_order_rejects_premium_and_unknown_users() -> None:
    gateway = StubGateway()
    service = CheckoutService(InMemoryProfileStore(profile(premium=True)), gateway)

    with pytest.raises(AlreadyPremium):
        asyncio.run(service.create_order("user-1"))
    with pytest.raises(ProfileNotFound):
        asyncio.run(service.create_order("ghost"))
    assert gateway.created == []


@pytest.mark.parametrize("amount", ["0", "-1", "abc", "nan"])
def test_bad_amounts_are_rejected(amount: str) -> None:
    with pytest.raises(ValueError):
        format_amount(amount)


def test_completed_capture_marks_premium() -> None:
    store = InMemoryProfileStore(profile())
    service = CheckoutService(store, StubGateway())

    updated = asyncio.run(service.capture_order("user-1", "ORDER-9"))

    assert updated.is_premium
    assert updated.payment_id == "ORDER-9"
    assert store.profiles["user-1"].is_premium


def test_incomplete_capture_leaves_user_free() -> None:
    store = InMemoryProfileStore(profile())
    service = CheckoutService(store, StubGateway(capture_status="PENDING"))

    with pytest.raises(PaymentError):
        asyncio.run(service.capture_order("user-1", "ORDER-9"))

    assert not store.profiles["user-1"].is_premium


def test_paypal_client_round_trip() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/v2/checkout/orders":
            return httpx.Response(201, json={"id": "5O190127TN364715T", "status": "CREATED"})
        return httpx.Response(201, json={"id": "5O190127TN364715T", "status": "COMPLETED"})

    store = InMemoryProfileStore(profile())
    gateway = PayPalClient(mock_client(handler), "client-id", "s3cret", base_url="https://paypal.test")
    service = CheckoutService(store, gateway)

    order = asyncio.run(service.create_order("user-1", "9.99"))
    updated = asyncio.run(service.capture_order("user-1", order.id))

    assert updated.is_premium
    create, capture = requests
    body = json.loads(create.content)
    assert body["intent"] == "CAPTURE"
    assert body["purchase_units"][0]["amount"] == {"currency_code": "USD", "value": "9.99"}
    assert create.headers["Authorization"].startswith("Basic ")
    assert capture.url.path == "/v2/checkout/orders/5O190127TN364715T/capture"


def test_paypal_errors_surface_as_payment_error() -> None:
    gateway = PayPalClient(
        mock_client(lambda request: httpx.Response(422, json={"name": "UNPROCESSABLE_ENTITY"})),
        "id",
        "secret",
    )

    with pytest.raises(PaymentError) as info:
        asyncio.run(gateway.capture_order("X"))

    assert info.value.status == 422
    assert info.value.details == {"name": "UNPROCESSABLE_ENTITY"}


def test_capture_escapes_the_order_id() -> None:
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.raw_path)
        return httpx.Response(201, json={"id": "X", "status": "COMPLETED"})

    gateway = PayPalClient(mock_client(handler), "id", "secret", base_url="https://paypal.test")

    asyncio.run(gateway.capture_order("ABC/../refund"))

    assert paths == [b"/v2/checkout/orders/ABC%2F..%2Frefund/capture"]
