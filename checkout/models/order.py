# checkout/models/order.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Created exactly once per successful checkout, together with its
    OrderItem rows. Afterwards only `status` (and `updated_at`) change.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: str = Field(
        foreign_key="users.id",
        index=True,
    )

    # pending | processing | completed | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    total_amount: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Sum of quantity * price_at_purchase over all lines",
    )

    # Stored exactly as received: street, city, zip_code, country (+ extras)
    shipping_address: dict[str, Any] = Field(
        sa_column=Column(JSON, nullable=False),
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last status change (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. Immutable after creation.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: str = Field(
        foreign_key="products.id",
        index=True,
    )

    product_name: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    # Snapshot of Product.price taken inside the checkout transaction
    price_at_purchase: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Unit price at time of order",
    )
