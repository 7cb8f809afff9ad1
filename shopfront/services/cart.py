from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List, Tuple

from shopfront.constants import CART_KEY, RELATED_PRODUCTS_LIMIT
from shopfront.db.storage import Storage
from shopfront.models import Product

logger = logging.getLogger(__name__)


class CartStore:
    """
    Quantity map product_id -> qty, persisted as JSON under the ``cart`` key.
    Quantities below 1 are never stored.
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def _load(self) -> Dict[str, int]:
        raw = self.storage.get(CART_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("cart payload is not JSON, starting empty")
            return {}
        if not isinstance(data, dict):
            return {}

        cart: Dict[str, int] = {}
        for pid, qty in data.items():
            try:
                q = int(qty)
            except (TypeError, ValueError):
                continue
            if q >= 1:
                cart[str(pid)] = q
        return cart

    def _save(self, cart: Dict[str, int]) -> None:
        self.storage.set(CART_KEY, json.dumps(cart))

    def items(self) -> Dict[str, int]:
        return self._load()

    def quantity(self, product_id: str) -> int:
        return self._load().get(product_id, 0)

    def set_quantity(self, product: Product, qty: int) -> Tuple[bool, str]:
        if qty < 1:
            return False, "quantity must be at least 1"
        if qty > product.stock:
            return False, f"only {product.stock} of {product.name} in stock"

        cart = self._load()
        cart[product.id] = int(qty)
        self._save(cart)
        return True, "ok"

    def add_item(self, product: Product, qty: int = 1) -> Tuple[bool, str]:
        if qty < 1:
            return False, "quantity must be at least 1"
        if not product.in_stock:
            return False, f"{product.name} is out of stock"

        cart = self._load()
        new_qty = cart.get(product.id, 0) + int(qty)
        if new_qty > product.stock:
            return False, f"only {product.stock} of {product.name} in stock"
        cart[product.id] = new_qty
        self._save(cart)
        return True, "ok"

    def remove_item(self, product_id: str) -> None:
        cart = self._load()
        cart.pop(product_id, None)
        self._save(cart)

    def total_items(self) -> int:
        return sum(self._load().values())

    def clear(self) -> None:
        self.storage.delete(CART_KEY)


def related_products(
    products: Iterable[Product],
    cart_ids: Iterable[str],
    limit: int = RELATED_PRODUCTS_LIMIT,
) -> List[Product]:
    """Catalog items sharing a category with the cart, excluding what is already in it."""
    products = list(products)
    in_cart = set(cart_ids)
    categories = {p.category for p in products if p.id in in_cart}
    if not categories:
        return []
    out = [p for p in products if p.id not in in_cart and p.category in categories]
    return out[:limit]
