# checkout/repositories/product_repo.py
from typing import Iterable

from sqlalchemy import delete, func, update
from sqlmodel import Session, select

from checkout.models.cart import CartItem
from checkout.models.order import OrderItem
from checkout.models.product import Product
from checkout.schemas.product import CatalogEntry


class ProductRepository:
    """
    Data access layer for Product (and the read-only catalog view).

    - Pure DB operations (CRUD + queries).
    - No commits: the calling service owns the transaction.
    """

    # ----- Products -----

    def get_by_id(
        self, session: Session, product_id: str, refresh: bool = False
    ) -> Product | None:
        return session.get(Product, product_id, populate_existing=refresh)

    def list(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Product]:
        stmt = select(Product).order_by(Product.name).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        session.refresh(product)
        return product

    def update_if_version(
        self,
        session: Session,
        product_id: str,
        expected_version: int,
        values: dict,
    ) -> bool:
        """
        Apply `values` only if the row still carries `expected_version`,
        bumping the version in the same statement. Returns False when the
        row was changed (or deleted) since it was read.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.version == expected_version)
            .values(**values, version=Product.version + 1)
        )
        result = session.connection().execute(stmt)
        return result.rowcount == 1

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.flush()

    def count_order_items(self, session: Session, product_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(OrderItem)
            .where(OrderItem.product_id == product_id)
        )
        return int(session.exec(stmt).one() or 0)

    def delete_cart_lines(self, session: Session, product_id: str) -> None:
        session.connection().execute(
            delete(CartItem).where(CartItem.product_id == product_id)
        )

    # ----- Catalog reads -----

    def get_catalog(
        self,
        session: Session,
        product_ids: Iterable[str],
        for_update: bool = False,
    ) -> dict[str, CatalogEntry]:
        """
        Current price / stock / name for the given ids.

        Missing ids are simply absent from the result. With `for_update`
        the rows are locked in primary-key order so two checkouts touching
        the same products always queue in the same order.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}

        stmt = (
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        return {
            p.id: CatalogEntry(
                product_id=p.id,
                name=p.name,
                price=p.price,
                stock_quantity=p.stock_quantity,
            )
            for p in session.exec(stmt).all()
        }

    def decrement_stock(
        self,
        session: Session,
        product_id: str,
        quantity: int,
    ) -> bool:
        """
        Atomically take `quantity` units, re-checking stock in the same
        statement. Returns False when fewer than `quantity` units are left.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(
                stock_quantity=Product.stock_quantity - quantity,
                version=Product.version + 1,
            )
        )
        result = session.connection().execute(stmt)
        return result.rowcount == 1
