from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping

from shopfront.constants import SHIPPING_FEE, TAX_RATE
from shopfront.models import OrderItem, Product


@dataclass(frozen=True)
class Line:
    product: Product
    qty: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.qty


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    lines: List[Line] = field(default_factory=list)

    def order_items(self) -> List[OrderItem]:
        return [OrderItem(product_id=ln.product.id, quantity=ln.qty, price=ln.product.price) for ln in self.lines]


def resolve_lines(quantities: Mapping[str, int], products: Iterable[Product]) -> List[Line]:
    # cart entries missing from the catalog are skipped, not an error
    by_id: Dict[str, Product] = {p.id: p for p in products}
    lines = []
    for pid, qty in quantities.items():
        prod = by_id.get(pid)
        if prod is None or qty < 1:
            continue
        lines.append(Line(product=prod, qty=int(qty)))
    return lines


def compute_totals(quantities: Mapping[str, int], products: Iterable[Product]) -> Totals:
    lines = resolve_lines(quantities, products or [])
    subtotal = sum((ln.line_total for ln in lines), Decimal("0"))
    tax = subtotal * TAX_RATE
    shipping = SHIPPING_FEE
    return Totals(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        total=subtotal + tax + shipping,
        lines=lines,
    )
