# checkout/services/cart_service.py
import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from checkout.core.errors import InvalidQuantity, NotFound, ProductNotFound
from checkout.models.cart import CartItem
from checkout.repositories.cart_repo import CartRepository
from checkout.repositories.product_repo import ProductRepository
from checkout.schemas.cart import CartItemRead, CartSummary

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate product existence (no stock check: a cart can sit for a
        long time, stock is only authoritative at checkout)
      - merge repeated adds into one line per product
      - price lines at the current catalog price for display
      - never touch Product.stock_quantity
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- public operations ----

    def get_cart_summary(self, session: Session, user_id: str) -> CartSummary:
        """
        Return full cart summary. A user without a cart gets an empty one.
        """
        cart = self.cart_repo.get_cart(session, user_id)
        if cart is None:
            return CartSummary(
                user_id=user_id,
                items=[],
                total_quantity=0,
                total_price=Decimal("0.00"),
            )

        item_reads: list[CartItemRead] = []
        total_qty = 0
        total_price = Decimal("0.00")

        for item, product in self.cart_repo.list_items_with_products(session, cart.id):
            line_total = product.price * item.quantity
            total_qty += item.quantity
            total_price += line_total

            item_reads.append(
                CartItemRead(
                    product_id=item.product_id,
                    product_name=product.name,
                    quantity=item.quantity,
                    unit_price=product.price,
                    line_total=line_total,
                )
            )

        return CartSummary(
            user_id=user_id,
            items=item_reads,
            total_quantity=total_qty,
            total_price=total_price,
        )

    def add_to_cart(
        self,
        session: Session,
        user_id: str,
        product_id: str,
        quantity: int,
    ) -> CartSummary:
        """
        Add a product to the user's cart.

        Rules:
          - quantity must be a positive integer
          - product must exist
          - an existing line for the product is incremented, not duplicated
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity(product_id, quantity)

        if self.product_repo.get_by_id(session, product_id) is None:
            raise ProductNotFound(product_id)

        # A concurrent first add for the same user/product loses the unique
        # race on flush; the second pass then finds the winner's rows.
        for attempt in (1, 2):
            try:
                self._merge_line(session, user_id, product_id, quantity)
                session.commit()
                break
            except IntegrityError:
                session.rollback()
                if attempt == 2:
                    raise
                logger.warning("Cart add raced for user %s, retrying", user_id)
            except Exception:
                session.rollback()
                raise

        logger.info("Added %s x %s to cart of user %s", quantity, product_id, user_id)
        return self.get_cart_summary(session, user_id)

    def _merge_line(
        self,
        session: Session,
        user_id: str,
        product_id: str,
        quantity: int,
    ) -> None:
        cart = self.cart_repo.get_or_create_cart(session, user_id)
        if not self.cart_repo.increment_item(session, cart.id, product_id, quantity):
            self.cart_repo.create_item(
                session,
                CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity),
            )

    def update_quantity(
        self,
        session: Session,
        user_id: str,
        product_id: str,
        quantity: int,
    ) -> CartSummary:
        """
        Set the quantity of a cart line. Zero or negative deletes the line.
        """
        cart = self.cart_repo.get_cart(session, user_id)
        item = self.cart_repo.get_item(session, cart.id, product_id) if cart else None
        if item is None:
            raise NotFound("Item not in cart")

        if quantity <= 0:
            self.cart_repo.delete_item(session, item)
        else:
            item.quantity = quantity
            self.cart_repo.update_item(session, item)
        session.commit()

        return self.get_cart_summary(session, user_id)

    def remove_item(
        self,
        session: Session,
        user_id: str,
        product_id: str,
    ) -> CartSummary:
        """
        Remove a product from the cart and return updated summary.
        """
        cart = self.cart_repo.get_cart(session, user_id)
        item = self.cart_repo.get_item(session, cart.id, product_id) if cart else None
        if item is None:
            raise NotFound("Item not found in cart")

        self.cart_repo.delete_item(session, item)
        session.commit()
        return self.get_cart_summary(session, user_id)

    def clear_cart(self, session: Session, user_id: str) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        cart = self.cart_repo.get_cart(session, user_id)
        if cart is not None:
            self.cart_repo.clear_items(session, cart.id)
            session.commit()
        return self.get_cart_summary(session, user_id)
