from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List

import httpx
import pytest

from shopfront.db.storage import MemoryStorage
from shopfront.models import Product
from shopfront.services.api_client import BackendClient

AGENT_ID = "3f2b8c1e-9a4d-4e6f-8b2a-1c3d5e7f9a0b"
T0 = 1_700_000_000_000


class FakeClock:
    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeBackend:
    """In-process stand-in for the commerce backend, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.products: List[Dict[str, Any]] = [
            {"id": "prod-a", "name": "Headphones", "description": "Wireless", "price": 10.00,
             "stock": 5, "category": "Electronics", "image": "/img/a.jpg", "commissionPercentage": 10},
            {"id": "prod-b", "name": "Charger", "price": "5.00", "stockQuantity": 3,
             "category": "Electronics"},
            {"id": "prod-c", "name": "Lamp", "price": 20, "stock": 0, "category": "Home"},
            {"id": "prod-d", "name": "Cable", "price": 7.5, "stock": 10, "category": "Electronics"},
            {"id": "bad", "name": "Broken"},
        ]
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self.order_status = 201
        self.order_body: Dict[str, Any] = {"orderId": "ord-1", "status": "PENDING"}
        self.catalog_down = False
        self.orders_down = False
        self.clicks_down = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.startswith("/api/products"):
            if self.catalog_down:
                raise httpx.ConnectError("catalog down", request=request)
            if path == "/api/products":
                return httpx.Response(200, json=self.products)
            pid = path.rsplit("/", 1)[1]
            for p in self.products:
                if p["id"] == pid:
                    return httpx.Response(200, json=p)
            return httpx.Response(404, json={"message": "Product not found"})

        if request.method == "POST" and path.startswith("/api/referral/click/"):
            if self.clicks_down:
                raise httpx.ConnectError("referral down", request=request)
            return httpx.Response(200, json={"ok": True})

        if request.method == "POST" and path == "/api/orders/place":
            if self.orders_down:
                raise httpx.ConnectError("orders down", request=request)
            return httpx.Response(self.order_status, json=self.order_body)

        if request.method == "GET" and path.startswith("/api/order/"):
            oid = path.rsplit("/", 1)[1]
            if oid in self.orders:
                return httpx.Response(200, json=self.orders[oid])
            return httpx.Response(404, json={"message": "Order not found"})

        return httpx.Response(404)

    def client(self) -> BackendClient:
        return BackendClient(
            api_url="http://backend.test",
            order_service_url="http://orders.test",
            timeout=5,
            transport=httpx.MockTransport(self.handler),
        )

    def sent(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend(fake_backend: FakeBackend) -> BackendClient:
    return fake_backend.client()


def make_product(pid: str = "p1", price: str = "10.00", stock: int = 5, category: str = "General", **kw) -> Product:
    return Product(id=pid, name=kw.pop("name", pid.upper()), price=Decimal(price), stock=stock, category=category, **kw)


@pytest.fixture
def product_a() -> Product:
    return make_product("A", "10.00", stock=5)


@pytest.fixture
def product_b() -> Product:
    return make_product("B", "5.00", stock=3)


@pytest.fixture
def checkout_form() -> Dict[str, str]:
    return {
        "firstName": "Asha",
        "lastName": "Rao",
        "phone": "+91 98765 43210",
        "shippingAddress": "12 Lake Road, Pune",
        "billingAddress": "",
        "paymentMethod": "card",
        "cardNumber": "4242424242424242",
        "expiryDate": "12/30",
        "cvc": "123",
    }
