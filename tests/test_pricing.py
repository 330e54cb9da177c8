"""Unit tests for line validation and pricing against a catalog snapshot."""

from decimal import Decimal

import pytest

from checkout.core.errors import (
    EmptyOrInvalidOrder,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
)
from checkout.schemas.order import OrderLineIn
from checkout.schemas.product import CatalogEntry
from checkout.services.pricing import price_lines


def _catalog(*entries):
    return {e.product_id: e for e in entries}


def _entry(pid, price="10.00", stock=5):
    return CatalogEntry(product_id=pid, name=f"Product {pid}", price=Decimal(price), stock_quantity=stock)


def _line(pid, qty):
    # model_construct skips validation so invalid quantities reach price_lines
    return OrderLineIn.model_construct(product_id=pid, quantity=qty)


class TestPriceLines:
    def test_prices_lines_and_total(self):
        catalog = _catalog(_entry("P", "10.00", 5), _entry("Q", "2.50", 10))

        priced = price_lines([_line("P", 3), _line("Q", 2)], catalog)

        assert [(l.product_id, l.quantity) for l in priced.lines] == [("P", 3), ("Q", 2)]
        assert priced.lines[0].unit_price == Decimal("10.00")
        assert priced.lines[1].line_total == Decimal("5.00")
        assert priced.total_amount == Decimal("35.00")

    def test_total_is_exact_decimal(self):
        catalog = _catalog(_entry("P", "0.10", 100))

        priced = price_lines([_line("P", 3)], catalog)

        assert priced.total_amount == Decimal("0.30")

    def test_duplicate_products_are_merged(self):
        catalog = _catalog(_entry("P", "1.00", 5), _entry("Q", "1.00", 5))

        priced = price_lines([_line("P", 1), _line("Q", 1), _line("P", 2)], catalog)

        assert [(l.product_id, l.quantity) for l in priced.lines] == [("P", 3), ("Q", 1)]

    def test_stock_check_is_cumulative_over_duplicates(self):
        catalog = _catalog(_entry("P", stock=3))

        with pytest.raises(InsufficientStock) as exc:
            price_lines([_line("P", 2), _line("P", 2)], catalog)

        assert exc.value.details == {"product_id": "P", "requested": 4, "available": 3}

    def test_exact_stock_is_allowed(self):
        priced = price_lines([_line("P", 5)], _catalog(_entry("P", stock=5)))
        assert priced.lines[0].quantity == 5


class TestPriceLinesRejections:
    @pytest.mark.parametrize("qty", [0, -1, True, 1.5, "2"])
    def test_non_positive_integer_quantity(self, qty):
        with pytest.raises(InvalidQuantity):
            price_lines([_line("P", qty)], _catalog(_entry("P")))

    def test_unknown_product(self):
        with pytest.raises(ProductNotFound) as exc:
            price_lines([_line("P", 1), _line("X", 1)], _catalog(_entry("P")))
        assert exc.value.details["product_id"] == "X"

    def test_first_failing_line_wins(self):
        catalog = _catalog(_entry("P", stock=0))

        with pytest.raises(ProductNotFound):
            price_lines([_line("X", 1), _line("P", 1)], catalog)

    def test_empty_request(self):
        with pytest.raises(EmptyOrInvalidOrder):
            price_lines([], {})

    def test_error_payload_shape(self):
        with pytest.raises(InsufficientStock) as exc:
            price_lines([_line("P", 9)], _catalog(_entry("P", stock=2)))

        body = exc.value.to_dict()
        assert body["code"] == "insufficient_stock"
        assert body["retryable"] is False
        assert body["available"] == 2
