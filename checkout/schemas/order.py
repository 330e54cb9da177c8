# checkout/schemas/order.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal["pending", "processing", "completed", "cancelled"]


class ShippingAddress(BaseModel):
    """
    Structured shipping address.

    Required: street, city, zip_code, country (non-blank).
    Optional: email (receives the order confirmation).
    Any extra keys are kept and stored with the order as-is.
    """

    model_config = ConfigDict(extra="allow")

    street: str
    city: str
    zip_code: str
    country: str
    email: EmailStr | None = None

    @field_validator("street", "city", "zip_code", "country")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class OrderLineIn(SQLModel):
    """
    One requested line: product + quantity.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class OrderCreate(SQLModel):
    """
    Payload for placing an order.

    - items omitted => the order is built from the user's current cart,
      and those cart lines are cleared on success.
    - items given   => exactly these lines are ordered; the cart is untouched.

    Backend derives:
      - user_id from token
      - status = 'pending'
      - prices and total_amount from the catalog at checkout time
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderLineIn] | None = None
    shipping_address: ShippingAddress | None = None


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: str
    status: OrderStatus
    total_amount: Decimal
    shipping_address: dict[str, Any]
    created_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    product_id: str
    product_name: str | None = None
    quantity: int
    price_at_purchase: Decimal
    line_total: Decimal


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
