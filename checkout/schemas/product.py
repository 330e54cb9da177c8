# checkout/schemas/product.py
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class ProductCreate(SQLModel):
    """
    Payload for creating a product (admin).

    - id is optional: if omitted, a uuid4 string is generated.
    """

    model_config = ConfigDict(extra="forbid")

    id: str | None = Field(default=None, max_length=64)
    name: str = Field(max_length=100)
    description: str | None = None
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional. Setting stock_quantity is the restock path.
    The write is refused (409) if the product changed since `version`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    price: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int | None = Field(default=None, ge=0)
    # Version the client last saw; defaults to the one read by the request.
    version: int | None = Field(default=None, ge=1)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: str
    name: str
    description: str | None
    price: Decimal
    stock_quantity: int
    version: int
    created_at: datetime


class CatalogEntry(SQLModel):
    """
    Point-in-time view of a product used for pricing and stock validation.
    """

    product_id: str
    name: str
    price: Decimal
    stock_quantity: int
