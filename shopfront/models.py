"""
Typed shapes for data crossing the backend boundary.

Catalog JSON is loosely typed upstream (prices arrive as numbers or strings,
stock as ``stock`` or ``stockQuantity``), so everything is parsed into these
models before the rest of the app touches it.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Product(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    price: Decimal = Field(ge=0)
    stock: int = Field(ge=0)
    category: str = ""
    image: Optional[str] = None
    images: List[str] = Field(default_factory=list, alias="allImages")
    commission_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, alias="commissionPercentage")

    @model_validator(mode="before")
    @classmethod
    def _stock_fallback(cls, data: Any) -> Any:
        # backend sends stockQuantity on some endpoints
        if isinstance(data, dict) and data.get("stock") is None and "stockQuantity" in data:
            data = dict(data)
            data["stock"] = data["stockQuantity"]
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("stock", mode="before")
    @classmethod
    def _stock_as_int(cls, v: Any) -> Any:
        # Decimal-backed columns come through as "12" or 12.0
        if isinstance(v, str) and v.strip():
            return int(Decimal(v))
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    @property
    def gallery(self) -> List[str]:
        if self.images:
            return list(self.images)
        return [self.image] if self.image else []


class OrderItem(BaseModel):
    product_id: str = Field(alias="productId")
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)

    model_config = ConfigDict(populate_by_name=True)

    def wire(self) -> Dict[str, Any]:
        return {"productId": self.product_id, "quantity": self.quantity, "price": float(self.price)}


class CustomerInfo(BaseModel):
    first_name: str
    last_name: str
    phone: str
    shipping_address: str
    billing_address: Optional[str] = None

    def wire(self) -> Dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "shippingAddress": self.shipping_address,
            "billingAddress": self.billing_address or self.shipping_address,
        }


class OrderDraft(BaseModel):
    items: List[OrderItem]
    customer_info: CustomerInfo
    payment_method: str
    payment_details: Dict[str, Any]
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    referral_agent_id: Optional[str] = None

    def wire(self) -> Dict[str, Any]:
        """Request body for the order-placement endpoint."""
        return {
            "items": [it.wire() for it in self.items],
            "referralAgentId": self.referral_agent_id,
            "totalAmount": float(self.total),
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "shipping": float(self.shipping),
            "customerInfo": self.customer_info.wire(),
            "paymentMethod": self.payment_method,
            "paymentDetails": dict(self.payment_details),
        }
