from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from shopfront.constants import LAST_ORDER_KEY, PAYMENT_CARD, PAYMENT_METHODS
from shopfront.db.storage import Storage
from shopfront.models import CustomerInfo, OrderDraft, Product
from shopfront.services.api_client import BackendClient, BackendError
from shopfront.services.attribution import AttributionStore
from shopfront.services.cart import CartStore
from shopfront.services.pricing import compute_totals

logger = logging.getLogger(__name__)

CARD_FIELDS = {
    "cardNumber": "Card number",
    "expiryDate": "Expiry date",
    "cvc": "CVC",
}
UPI_FIELDS = {
    "upiId": "UPI ID",
}


class CheckoutValidationError(ValueError):
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


@dataclass(frozen=True)
class PlacedOrder:
    order_id: str
    response: dict


def _clean(v) -> str:
    return (v or "").strip()


def build_customer(form: Mapping[str, str]) -> tuple[Optional[CustomerInfo], List[str]]:
    errors = []
    first_name = _clean(form.get("firstName"))
    last_name = _clean(form.get("lastName"))
    phone = _clean(form.get("phone"))
    shipping = _clean(form.get("shippingAddress"))
    billing = _clean(form.get("billingAddress"))

    if not first_name:
        errors.append("First name is required")
    if not last_name:
        errors.append("Last name is required")
    if not phone:
        errors.append("Mobile number is required")
    if not shipping:
        errors.append("Shipping address is required")
    if errors:
        return None, errors

    return (
        CustomerInfo(
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            shipping_address=shipping,
            billing_address=billing or shipping,
        ),
        [],
    )


def build_payment_details(method: str, form: Mapping[str, str]) -> tuple[Dict[str, str], List[str]]:
    if method not in PAYMENT_METHODS:
        return {}, [f"Unsupported payment method: {method or '(empty)'}"]

    fields = CARD_FIELDS if method == PAYMENT_CARD else UPI_FIELDS
    details: Dict[str, str] = {}
    errors = []
    for key, label in fields.items():
        v = _clean(form.get(key))
        if not v:
            errors.append(f"{label} is required")
        details[key] = v

    if method == PAYMENT_CARD:
        postal = _clean(form.get("postalCode"))
        if postal:
            details["postalCode"] = postal
    # capture is simulated upstream; the order service expects a final status
    details["status"] = "succeeded"
    return details, errors


def validate_checkout_form(form: Mapping[str, str]) -> tuple[CustomerInfo, str, Dict[str, str]]:
    """Customer and payment fields only. Raises CheckoutValidationError; no I/O."""
    customer, errors = build_customer(form)

    method = _clean(form.get("paymentMethod")) or PAYMENT_CARD
    details, payment_errors = build_payment_details(method, form)
    errors.extend(payment_errors)

    if errors:
        raise CheckoutValidationError(errors)
    return customer, method, details


def build_draft(
    quantities: Mapping[str, int],
    products: List[Product],
    customer: CustomerInfo,
    payment_method: str,
    payment_details: Dict[str, str],
    referral_agent_id: Optional[str],
) -> OrderDraft:
    """
    Freezes prices from ``products`` (the catalog read done at submission)
    into an order draft.
    """
    totals = compute_totals(quantities, products)
    if not totals.lines:
        raise CheckoutValidationError(["None of the items in your cart are available"])

    return OrderDraft(
        items=totals.order_items(),
        customer_info=customer,
        payment_method=payment_method,
        payment_details=payment_details,
        subtotal=totals.subtotal,
        tax=totals.tax,
        shipping=totals.shipping,
        total=totals.total,
        referral_agent_id=referral_agent_id,
    )


def submit_order(
    draft: OrderDraft,
    backend: BackendClient,
    cart: CartStore,
    attribution: AttributionStore,
    storage: Storage,
) -> PlacedOrder:
    """
    Sends the draft once. Only a 2xx answer carrying an orderId clears the
    cart and the referral; any failure leaves both untouched.

    Raises:
        BackendUnavailable: order service unreachable
        BackendError: order rejected (message from the service)
    """
    result = backend.place_order(draft.wire())
    order_id = result.get("orderId")
    if not order_id:
        raise BackendError("Order service did not return an order id")

    cart.clear()
    attribution.clear_referral()
    remember_order(storage, {**draft.wire(), **result})

    logger.info(
        "order placed id=%s total=%s referral=%s",
        order_id, draft.total, draft.referral_agent_id or "-",
    )
    return PlacedOrder(order_id=str(order_id), response=result)


def checkout(
    form: Mapping[str, str],
    backend: BackendClient,
    cart: CartStore,
    attribution: AttributionStore,
    storage: Storage,
) -> PlacedOrder:
    """
    Whole checkout: local validation, one catalog read, one order call.

    Raises:
        CheckoutValidationError: empty cart or bad form, before any network call
        BackendUnavailable: catalog or order service unreachable
        BackendError: catalog or order service answered non-2xx
    """
    quantities = cart.items()
    if not quantities:
        raise CheckoutValidationError(["Your cart is empty"])
    customer, method, details = validate_checkout_form(form)

    products = backend.list_products(strict=True)
    draft = build_draft(quantities, products, customer, method, details, attribution.get_active_referral())
    return submit_order(draft, backend, cart, attribution, storage)


def load_last_order(storage: Storage) -> Optional[dict]:
    raw = storage.get(LAST_ORDER_KEY)
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("cached lastOrder is not JSON")
        return None
    return data if isinstance(data, dict) else None


def remember_order(storage: Storage, order: dict) -> None:
    storage.set(LAST_ORDER_KEY, json.dumps(order, default=str))


