"""
Tests for BackendClient: catalog parsing and quarantine, referral click, order placement errors.
"""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from conftest import AGENT_ID
from shopfront.services.api_client import BackendClient, BackendError, BackendUnavailable, parse_products


def test_list_products_parses_and_quarantines(backend: BackendClient) -> None:
    products = backend.list_products()
    ids = [p.id for p in products]

    assert ids == ["prod-a", "prod-b", "prod-c", "prod-d"]
    by_id = {p.id: p for p in products}
    assert by_id["prod-a"].price == Decimal("10.0")
    assert by_id["prod-a"].commission_percentage == Decimal("10")
    assert by_id["prod-b"].price == Decimal("5.00")
    assert by_id["prod-b"].stock == 3
    assert not by_id["prod-c"].in_stock


def test_list_products_backend_down_returns_empty(fake_backend, backend: BackendClient) -> None:
    fake_backend.catalog_down = True
    assert backend.list_products() == []


def test_list_products_non_200_returns_empty() -> None:
    client = BackendClient(
        api_url="http://backend.test",
        transport=httpx.MockTransport(lambda r: httpx.Response(500, json={"message": "boom"})),
    )
    assert client.list_products() == []


def test_list_products_strict_raises_when_down(fake_backend, backend: BackendClient) -> None:
    fake_backend.catalog_down = True
    with pytest.raises(BackendUnavailable):
        backend.list_products(strict=True)


def test_list_products_strict_raises_on_non_200() -> None:
    client = BackendClient(
        api_url="http://backend.test",
        transport=httpx.MockTransport(lambda r: httpx.Response(503, json={"message": "maintenance"})),
    )
    with pytest.raises(BackendError) as exc:
        client.list_products(strict=True)
    assert exc.value.status_code == 503
    assert exc.value.message == "maintenance"


def test_parse_products_rejects_non_list() -> None:
    assert parse_products({"products": []}) == []


@pytest.mark.parametrize(
    "entry",
    [
        {"id": "x", "name": "Neg", "price": -1, "stock": 1},
        {"id": "x", "name": "NegStock", "price": 1, "stock": -2},
        {"id": "x", "price": 1, "stock": 1},
        {"id": "x", "name": "NoPrice", "stock": 1},
        "just a string",
    ],
)
def test_malformed_entries_dropped(entry) -> None:
    good = {"id": "ok", "name": "Fine", "price": "1.25", "stock": "4"}
    products = parse_products([entry, good])
    assert [p.id for p in products] == ["ok"]
    assert products[0].stock == 4


def test_integer_ids_become_strings() -> None:
    products = parse_products([{"id": 42, "name": "Numbered", "price": 2, "stock": 1}])
    assert products[0].id == "42"


def test_get_product(backend: BackendClient) -> None:
    p = backend.get_product("prod-a")
    assert p is not None
    assert p.name == "Headphones"
    assert p.gallery == ["/img/a.jpg"]


def test_get_product_missing_is_none(backend: BackendClient) -> None:
    assert backend.get_product("nope") is None


def test_get_product_backend_down_raises(fake_backend, backend: BackendClient) -> None:
    fake_backend.catalog_down = True
    with pytest.raises(BackendUnavailable):
        backend.get_product("prod-a")


def test_record_referral_click(fake_backend, backend: BackendClient) -> None:
    assert backend.record_referral_click(AGENT_ID) is True
    assert len(fake_backend.sent("POST", f"/api/referral/click/{AGENT_ID}")) == 1


def test_record_referral_click_failure_is_swallowed(fake_backend, backend: BackendClient) -> None:
    fake_backend.clicks_down = True
    assert backend.record_referral_click(AGENT_ID) is False


def test_place_order_goes_to_order_service(fake_backend, backend: BackendClient) -> None:
    result = backend.place_order({"items": []})
    assert result["orderId"] == "ord-1"
    req = fake_backend.sent("POST", "/api/orders/place")[0]
    assert req.url.host == "orders.test"


def test_place_order_business_error_message_verbatim(fake_backend, backend: BackendClient) -> None:
    fake_backend.order_status = 400
    fake_backend.order_body = {"message": "Product prod-a is out of stock"}
    with pytest.raises(BackendError) as exc:
        backend.place_order({"items": []})
    assert exc.value.message == "Product prod-a is out of stock"
    assert exc.value.status_code == 400


def test_place_order_unreachable(fake_backend, backend: BackendClient) -> None:
    fake_backend.orders_down = True
    with pytest.raises(BackendUnavailable):
        backend.place_order({"items": []})


def test_get_order(fake_backend, backend: BackendClient) -> None:
    fake_backend.orders["ord-9"] = {"id": "ord-9", "orderNumber": "A-9", "totalPrice": 27}
    assert backend.get_order("ord-9")["orderNumber"] == "A-9"
    assert backend.get_order("missing") is None
