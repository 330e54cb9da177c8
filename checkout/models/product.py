# checkout/models/product.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    `stock_quantity` is the only contended column in the system. It is
    decremented exclusively by the checkout transaction (conditional UPDATE)
    and restocked by admin product updates. `version` is bumped on every
    write to the row and guards admin edits against lost updates.
    """

    __tablename__ = "products"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        max_length=64,
        description="Opaque product identifier",
    )

    name: str = Field(
        max_length=100,
        index=True,
        description="Display name of the product",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description",
    )

    price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        gt=0,
        description="Unit price (fixed-point)",
    )

    stock_quantity: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    version: int = Field(
        default=1,
        description="Bumped on every write; optimistic guard for edits",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
