# checkout/core/errors.py
"""
Typed rejections of the checkout core.

Every operation that can be refused for a business reason raises one of
these classes. They carry a stable machine code, the HTTP status the API
layer answers with, whether the client may retry as-is, and structured
details for user display. Anything that is *not* a ShopError is an
infrastructure fault and surfaces as a 500.
"""
from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    INVALID_INPUT = "invalid_input"
    PRODUCT_NOT_FOUND = "product_not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    STOCK_CHANGED = "stock_changed"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    PRODUCT_IN_USE = "product_in_use"
    PRODUCT_CHANGED = "product_changed"


class ShopError(Exception):
    code: ErrorCode = ErrorCode.INVALID_INPUT
    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code.value,
            "retryable": self.retryable,
            **self.details,
        }


# ----- Invalid input -----


class InvalidInput(ShopError):
    code = ErrorCode.INVALID_INPUT
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidQuantity(InvalidInput):
    def __init__(self, product_id: str, quantity: Any):
        super().__init__(
            "Quantity must be a positive integer",
            product_id=product_id,
            quantity=quantity,
        )


class MissingShippingAddress(InvalidInput):
    def __init__(self):
        super().__init__("Shipping address is required")


class EmptyOrInvalidOrder(InvalidInput):
    pass


class InvalidStatusTransition(InvalidInput):
    def __init__(self, current: str, new: str):
        super().__init__(
            f"Invalid status transition: {current} -> {new}",
            current_status=current,
            requested_status=new,
        )


# ----- Catalog / stock -----


class ProductNotFound(ShopError):
    code = ErrorCode.PRODUCT_NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, product_id: str):
        super().__init__("Product not found", product_id=product_id)


class InsufficientStock(ShopError):
    """Client mistake: the cart asks for more than is on hand."""

    code = ErrorCode.INSUFFICIENT_STOCK
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock (have {available}, requested {requested})",
            product_id=product_id,
            requested=requested,
            available=available,
        )


class StockChanged(ShopError):
    """Race lost between validation and decrement. Safe to retry once."""

    code = ErrorCode.STOCK_CHANGED
    status_code = status.HTTP_409_CONFLICT
    retryable = True

    def __init__(self, product_id: str | None = None):
        super().__init__(
            "Stock changed while placing the order, please retry",
            product_id=product_id,
        )


class ProductInUse(ShopError):
    code = ErrorCode.PRODUCT_IN_USE
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id: str, order_count: int):
        super().__init__(
            f"Cannot delete product. It exists in {order_count} order(s).",
            product_id=product_id,
            order_count=order_count,
        )


class ProductChanged(ShopError):
    """The product row moved on (another edit or a checkout) since it was read."""

    code = ErrorCode.PRODUCT_CHANGED
    status_code = status.HTTP_409_CONFLICT
    retryable = True

    def __init__(self, product_id: str, expected_version: int):
        super().__init__(
            "Product was modified concurrently, reload and retry",
            product_id=product_id,
            expected_version=expected_version,
        )


# ----- Access -----


class Forbidden(ShopError):
    code = ErrorCode.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFound(ShopError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found"):
        super().__init__(message)
