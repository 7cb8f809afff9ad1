from __future__ import annotations

import io
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from shopfront.config import settings
from shopfront.utils.formatters import money


def _num(v: Any) -> Decimal:
    try:
        d = Decimal(str(v))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")
    return d if d.is_finite() else Decimal("0")


def receipt_lines(order: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Line items from a cached order. Accepts both the placement body
    (items: productId/quantity/price) and the order lookup shape
    (products: name/quantity/price).
    """
    rows = order.get("products") or order.get("items") or []
    out = []
    for it in rows:
        if not isinstance(it, dict):
            continue
        qty = int(_num(it.get("quantity", 0)))
        price = _num(it.get("price", 0))
        out.append(
            {
                "name": str(it.get("name") or it.get("productId") or "item"),
                "qty": qty,
                "price": price,
                "line_total": price * qty,
            }
        )
    return out


def receipt_total(order: Dict[str, Any]) -> Decimal:
    for key in ("totalAmount", "totalPrice", "total"):
        if order.get(key) is not None:
            return _num(order[key])
    return sum((ln["line_total"] for ln in receipt_lines(order)), Decimal("0"))


def _customer_name(order: Dict[str, Any]) -> str:
    c = order.get("customerInfo") or order.get("customer") or {}
    if not isinstance(c, dict):
        return ""
    return " ".join(p for p in (c.get("firstName"), c.get("lastName")) if p)


def _order_id(order: Dict[str, Any]) -> str:
    return str(order.get("orderNumber") or order.get("orderId") or order.get("id") or "order")


def receipt_filename(order: Dict[str, Any]) -> str:
    safe_id = re.sub(r"[^A-Za-z0-9_-]", "_", _order_id(order))
    return f"receipt_{safe_id}.pdf"


def generate_receipt_pdf(order: Dict[str, Any]) -> bytes:
    """Renders the receipt in memory; nothing is written to disk."""
    order_id = _order_id(order)
    buf = io.BytesIO()

    c = canvas.Canvas(buf, pagesize=A4)
    w, h = A4

    y = h - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(40, y, f"ORDER #{order_id}")
    y -= 20

    c.setFont("Helvetica", 11)
    name = _customer_name(order)
    if name:
        c.drawString(40, y, f"Customer: {name}")
        y -= 16
    if order.get("createdAt"):
        c.drawString(40, y, f"Date: {order['createdAt']}")
        y -= 16
    c.drawString(40, y, f"Currency: {settings.currency}")
    y -= 24

    # header
    c.setFont("Helvetica-Bold", 10)
    c.drawString(40, y, "Item")
    c.drawString(310, y, "Qty")
    c.drawString(360, y, "Price")
    c.drawString(440, y, "Total")
    y -= 10
    c.line(40, y, 550, y)
    y -= 16

    c.setFont("Helvetica", 10)
    for it in receipt_lines(order):
        c.drawString(40, y, it["name"][:45])
        c.drawRightString(340, y, str(it["qty"]))
        c.drawRightString(420, y, money(it["price"], currency=""))
        c.drawRightString(550, y, money(it["line_total"], currency=""))
        y -= 14
        if y < 80:
            c.showPage()
            y = h - 50
            c.setFont("Helvetica", 10)

    y -= 10
    c.line(40, y, 550, y)
    y -= 18
    c.setFont("Helvetica", 10)
    for label, key in (("Subtotal", "subtotal"), ("Tax", "tax"), ("Shipping", "shipping")):
        if order.get(key) is not None:
            c.drawRightString(550, y, f"{label}: {money(_num(order[key]))}")
            y -= 14
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(550, y, f"TOTAL: {money(receipt_total(order))}")

    c.save()
    return buf.getvalue()
