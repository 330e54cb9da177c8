# checkout/services/pricing.py
"""
Pricing & stock validation.

Pure functions over a catalog snapshot: no session, no side effects.
The checkout transaction feeds it the rows it has just re-read (and
locked); the result fixes both the order total and every line's
price_at_purchase.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Protocol

from checkout.core.errors import (
    EmptyOrInvalidOrder,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
)
from checkout.schemas.product import CatalogEntry

ZERO = Decimal("0.00")


class RequestedLine(Protocol):
    product_id: str
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PricedOrder:
    lines: list[PricedLine]
    total_amount: Decimal


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def price_lines(
    lines: Iterable[RequestedLine],
    catalog: Mapping[str, CatalogEntry],
) -> PricedOrder:
    """
    Validate requested lines against a catalog snapshot and price them.

    Lines are checked in request order and the first failure is raised:
      - InvalidQuantity   quantity is not a positive integer
      - ProductNotFound   product missing from the snapshot
      - InsufficientStock cumulative quantity for the product exceeds stock

    Repeated product ids are merged into one line (first-seen order kept).
    Raises EmptyOrInvalidOrder when there is nothing to charge.
    """
    requested: dict[str, int] = {}

    for line in lines:
        if not _is_positive_int(line.quantity):
            raise InvalidQuantity(line.product_id, line.quantity)

        entry = catalog.get(line.product_id)
        if entry is None:
            raise ProductNotFound(line.product_id)

        wanted = requested.get(line.product_id, 0) + line.quantity
        if wanted > entry.stock_quantity:
            raise InsufficientStock(
                line.product_id,
                requested=wanted,
                available=entry.stock_quantity,
            )
        requested[line.product_id] = wanted

    priced = [
        PricedLine(
            product_id=product_id,
            name=catalog[product_id].name,
            quantity=quantity,
            unit_price=catalog[product_id].price,
        )
        for product_id, quantity in requested.items()
    ]

    total = sum((p.line_total for p in priced), ZERO)
    if total <= ZERO:
        raise EmptyOrInvalidOrder("Total order amount must be positive")

    return PricedOrder(lines=priced, total_amount=total)
