# checkout/schemas/cart.py
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    A second add of the same product increments the existing line.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for setting the quantity of a cart line.
    Zero or negative removes the line.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int


class CartItemRead(SQLModel):
    """
    Read model for a single cart line, priced at the current catalog price.
    """

    product_id: str
    product_name: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    user_id: str
    items: list[CartItemRead]
    total_quantity: int
    total_price: Decimal
