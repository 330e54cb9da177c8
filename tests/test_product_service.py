"""Admin product edits are guarded by the row version."""

from decimal import Decimal

import pytest
from sqlmodel import Session

from checkout.core.errors import ProductChanged, ProductInUse
from checkout.database import engine
from checkout.models.product import Product
from checkout.repositories.cart_repo import CartRepository
from checkout.repositories.order_repo import OrderRepository
from checkout.repositories.product_repo import ProductRepository
from checkout.schemas.order import OrderCreate
from checkout.schemas.product import ProductUpdate
from checkout.services.order_service import OrderService
from checkout.services.product_service import ProductService

from conftest import ADDRESS, make_product, make_user, stock_of


def _buy(user_id, product_id, quantity):
    service = OrderService(OrderRepository(), CartRepository(), ProductRepository())
    with Session(engine) as s:
        return service.place_order(
            s,
            user_id,
            OrderCreate(
                items=[{"product_id": product_id, "quantity": quantity}],
                shipping_address=ADDRESS,
            ),
        )


class CheckoutAfterRead(ProductRepository):
    """A checkout commits right after the admin request has read the product."""

    def __init__(self):
        self.fired = False

    def get_by_id(self, session, product_id, refresh=False):
        product = super().get_by_id(session, product_id, refresh=refresh)
        if not self.fired:
            self.fired = True
            _buy("u1", product_id, 2)
        return product


@pytest.fixture(autouse=True)
def users():
    make_user("u1")


class TestUpdateProduct:
    def test_restock_bumps_version(self, session):
        make_product("P", stock=1)

        product = ProductService(ProductRepository()).update_product(
            session, "P", ProductUpdate(stock_quantity=9)
        )

        assert product.stock_quantity == 9
        assert product.version == 2

    def test_checkout_bumps_version(self):
        make_product("P", stock=5)

        _buy("u1", "P", 1)

        with Session(engine) as s:
            assert s.get(Product, "P").version == 2

    def test_checkout_between_read_and_write_is_not_overwritten(self, session):
        make_product("P", "10.00", stock=5)
        service = ProductService(CheckoutAfterRead())

        with pytest.raises(ProductChanged) as exc:
            service.update_product(session, "P", ProductUpdate(price=Decimal("12.00")))

        assert exc.value.status_code == 409
        assert exc.value.details["expected_version"] == 1
        with Session(engine) as s:
            product = s.get(Product, "P")
            assert product.stock_quantity == 3
            assert product.price == Decimal("10.00")

    def test_stale_client_version_is_refused(self, session):
        make_product("P", stock=5)
        _buy("u1", "P", 1)

        with pytest.raises(ProductChanged):
            ProductService(ProductRepository()).update_product(
                session, "P", ProductUpdate(stock_quantity=50, version=1)
            )

        assert stock_of("P") == 4

    def test_current_client_version_is_accepted(self, session):
        make_product("P", stock=5)

        product = ProductService(ProductRepository()).update_product(
            session, "P", ProductUpdate(name="Renamed", version=1)
        )

        assert product.name == "Renamed"
        assert product.version == 2


class TestDeleteProduct:
    def test_referenced_product_is_kept(self, session):
        make_product("P", stock=5)
        _buy("u1", "P", 1)

        with pytest.raises(ProductInUse):
            ProductService(ProductRepository()).delete_product(session, "P")

        assert stock_of("P") == 4
