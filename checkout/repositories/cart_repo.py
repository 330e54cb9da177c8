# checkout/repositories/cart_repo.py
import uuid

from sqlalchemy import delete, update
from sqlmodel import Session, select

from checkout.models.cart import Cart, CartItem
from checkout.models.product import Product


class CartRepository:
    """
    Data access layer for carts and cart_items.

    No commits here; the service decides when the unit of work ends.
    """

    # ---- Carts ----

    def get_cart(
        self, session: Session, user_id: str, for_update: bool = False
    ) -> Cart | None:
        """
        With `for_update` the cart row is locked, so two checkouts of the
        same cart queue behind each other.
        """
        stmt = select(Cart).where(Cart.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return session.exec(stmt).first()

    def get_or_create_cart(self, session: Session, user_id: str) -> Cart:
        """
        Return the user's cart, creating it on first use.
        A concurrent first add may make the flush fail on the unique
        user_id; the service retries the whole unit of work then.
        """
        cart = self.get_cart(session, user_id)
        if cart:
            return cart

        cart = Cart(user_id=user_id)
        session.add(cart)
        session.flush()
        return cart

    # ---- Items ----

    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at)
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).all()

    def list_items_with_products(
        self,
        session: Session,
        cart_id: uuid.UUID,
    ) -> list[tuple[CartItem, Product]]:
        stmt = (
            select(CartItem, Product)
            .join(Product, Product.id == CartItem.product_id)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at)
        )
        return session.exec(stmt).all()

    def get_item(
        self, session: Session, cart_id: uuid.UUID, product_id: str
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    def create_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def increment_item(
        self,
        session: Session,
        cart_id: uuid.UUID,
        product_id: str,
        quantity: int,
    ) -> bool:
        """
        quantity = quantity + :n, evaluated by the database.
        Returns False if the line does not exist.
        """
        stmt = (
            update(CartItem)
            .where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
            .values(quantity=CartItem.quantity + quantity)
        )
        result = session.connection().execute(stmt)
        return result.rowcount == 1

    def update_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete_item(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()

    def clear_items(self, session: Session, cart_id: uuid.UUID) -> None:
        session.connection().execute(
            delete(CartItem).where(CartItem.cart_id == cart_id)
        )

    def remove_lines(self, session: Session, items: list[CartItem]) -> int:
        """
        Delete exactly these lines, as read (same id and quantity).
        Returns how many matched; a line changed or removed meanwhile
        does not count.
        """
        removed = 0
        for item in items:
            result = session.connection().execute(
                delete(CartItem).where(
                    CartItem.id == item.id,
                    CartItem.quantity == item.quantity,
                )
            )
            removed += result.rowcount
        return removed
