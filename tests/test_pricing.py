"""
Tests for cart totals: subtotal, flat 8% tax, free shipping, decimal rounding at display only.
"""

from __future__ import annotations

from decimal import Decimal

from conftest import make_product
from shopfront.services.pricing import compute_totals
from shopfront.utils.formatters import money


def test_example_cart_totals(product_a, product_b) -> None:
    totals = compute_totals({"A": 2, "B": 1}, [product_a, product_b])

    assert totals.subtotal == Decimal("25.00")
    assert totals.tax == Decimal("2.00")
    assert totals.shipping == Decimal("0.00")
    assert totals.total == Decimal("27.00")
    assert money(totals.total) == "27.00 USD"


def test_unknown_products_are_excluded(product_a) -> None:
    totals = compute_totals({"A": 1, "ghost": 4}, [product_a])
    assert [ln.product.id for ln in totals.lines] == ["A"]
    assert totals.subtotal == Decimal("10.00")


def test_empty_catalog_gives_zero_totals() -> None:
    for products in ([], None):
        totals = compute_totals({"A": 3}, products)
        assert totals.lines == []
        assert totals.subtotal == 0
        assert totals.tax == 0
        assert totals.total == 0


def test_no_intermediate_rounding() -> None:
    p = make_product("cheap", "0.333", stock=10)
    totals = compute_totals({"cheap": 3}, [p])

    assert totals.subtotal == Decimal("0.999")
    assert totals.tax == Decimal("0.07992")
    assert totals.total == Decimal("1.07892")
    assert money(totals.total) == "1.08 USD"


def test_order_items_freeze_unit_price(product_a, product_b) -> None:
    totals = compute_totals({"A": 2, "B": 1}, [product_a, product_b])
    items = {it.product_id: it for it in totals.order_items()}

    assert items["A"].quantity == 2
    assert items["A"].price == Decimal("10.00")
    assert items["B"].wire() == {"productId": "B", "quantity": 1, "price": 5.0}


def test_money_formatting() -> None:
    assert money(Decimal("2.005")) == "2.01 USD"
    assert money(3, decimals=0, currency="INR") == "3 INR"
    assert money(Decimal("1.5"), currency="") == "1.50"
