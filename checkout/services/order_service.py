# checkout/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlmodel import Session

from checkout.core.config import Settings, get_settings
from checkout.core.errors import (
    EmptyOrInvalidOrder,
    Forbidden,
    InvalidStatusTransition,
    MissingShippingAddress,
    NotFound,
    StockChanged,
)
from checkout.models.order import Order, OrderItem
from checkout.repositories.cart_repo import CartRepository
from checkout.repositories.order_repo import OrderRepository
from checkout.repositories.product_repo import ProductRepository
from checkout.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderLineIn,
    OrderRead,
    OrderStatus,
    OrderWithItemsRead,
)
from checkout.services.pricing import price_lines

logger = logging.getLogger(__name__)

# pending    -> processing, cancelled
# processing -> completed, cancelled
# completed  -> (no change)
# cancelled  -> (no change)
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"processing", "cancelled"},
    "processing": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

# serialization_failure, deadlock_detected, lock_not_available
_PG_CONFLICT_CODES = {"40001", "40P01", "55P03"}


def _is_conflict(exc: DBAPIError) -> bool:
    """
    True when the database refused the transaction because of a concurrent
    one (safe to retry), as opposed to a real infrastructure failure.
    """
    orig = exc.orig
    if getattr(orig, "pgcode", None) in _PG_CONFLICT_CODES:
        return True
    if getattr(orig, "sqlstate", None) in _PG_CONFLICT_CODES:
        return True
    return "database is locked" in str(orig)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Place an order atomically (validate, price, persist, decrement)
      - Retry a checkout that lost a stock race
      - Enforce ownership on reads
      - Enforce simple status transitions (admin)
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        settings: Settings | None = None,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.settings = settings or get_settings()

    # -------- Checkout --------

    def place_order(
        self,
        session: Session,
        user_id: str,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Convert the requested lines (or the user's cart) into an Order.

        Runs as one transaction; on any error nothing is persisted.
        A StockChanged conflict is retried CHECKOUT_CONFLICT_RETRIES times
        with a fresh transaction before it is reported to the caller.
        """
        if payload.shipping_address is None:
            raise MissingShippingAddress()

        retries = max(self.settings.CHECKOUT_CONFLICT_RETRIES, 0)
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._place_order_once(session, user_id, payload)
            except StockChanged as exc:
                if attempt > retries:
                    logger.warning(
                        "Checkout for user %s gave up after %s attempt(s): %s",
                        user_id,
                        attempt,
                        exc.details.get("product_id"),
                    )
                    raise
                logger.info(
                    "Checkout for user %s hit a stock conflict, retrying (%s/%s)",
                    user_id,
                    attempt,
                    retries,
                )

    def _place_order_once(
        self,
        session: Session,
        user_id: str,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Steps:
          1. Resolve lines (explicit list, or the current cart).
          2. Re-read and lock the catalog rows for those products.
          3. Validate + price against that read.
          4. Create the Order row (status='pending').
          5. Create OrderItem rows with price_at_purchase from step 2.
          6. Decrement stock, re-checking availability in the UPDATE.
          7. Remove the cart lines if the order came from the cart; lines
             already consumed by another checkout abort this one.
          8. Commit.
        """
        from_cart = payload.items is None
        try:
            self._apply_statement_timeout(session)

            # 1) Lines
            cart = None
            cart_items = []
            if from_cart:
                cart = self.cart_repo.get_cart(session, user_id, for_update=True)
                cart_items = self.cart_repo.list_items(session, cart.id) if cart else []
                lines = [
                    OrderLineIn(product_id=ci.product_id, quantity=ci.quantity)
                    for ci in cart_items
                ]
            else:
                lines = list(payload.items)

            if not lines:
                raise EmptyOrInvalidOrder("Order must contain at least one item")

            # 2) Fresh, locked catalog read
            catalog = self.product_repo.get_catalog(
                session,
                [line.product_id for line in lines],
                for_update=True,
            )

            # 3) Validate + price
            priced = price_lines(lines, catalog)

            # 4) Order
            order = self.order_repo.create_order(
                session,
                Order(
                    user_id=user_id,
                    status="pending",
                    total_amount=priced.total_amount,
                    shipping_address=payload.shipping_address.model_dump(
                        mode="json", exclude_unset=True
                    ),
                ),
            )

            # 5) Items
            order_items = self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=line.product_id,
                        product_name=line.name,
                        quantity=line.quantity,
                        price_at_purchase=line.unit_price,
                    )
                    for line in priced.lines
                ],
            )

            # 6) Stock
            for line in priced.lines:
                if not self.product_repo.decrement_stock(
                    session, line.product_id, line.quantity
                ):
                    raise StockChanged(line.product_id)

            # 7) Cart: the lines must still be exactly what was priced,
            # otherwise a concurrent checkout of the same cart won.
            if cart_items:
                removed = self.cart_repo.remove_lines(session, cart_items)
                if removed != len(cart_items):
                    raise StockChanged()

            result = self._build_order_with_items_dto(order, order_items)

            # 8) Commit
            session.commit()
        except DBAPIError as exc:
            session.rollback()
            if _is_conflict(exc):
                raise StockChanged() from exc
            logger.exception("Checkout for user %s failed", user_id)
            raise
        except Exception:
            session.rollback()
            raise

        logger.info(
            "Order %s placed by user %s: %s line(s), total %s",
            result.id,
            user_id,
            len(result.items),
            result.total_amount,
        )
        return result

    def _apply_statement_timeout(self, session: Session) -> None:
        timeout_ms = self.settings.CHECKOUT_STATEMENT_TIMEOUT_MS
        if not timeout_ms or session.get_bind().dialect.name != "postgresql":
            return
        session.connection().execute(
            text(f"SET LOCAL statement_timeout = {int(timeout_ms)}")
        )

    # -------- Reads --------

    def get_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        user_id: str,
        role: str,
    ) -> OrderWithItemsRead:
        """
        Get a single order including items.

        - admin: any order; NotFound if it does not exist.
        - others: only their own orders; Forbidden otherwise, whether or not
          the order exists.
        """
        order = self.order_repo.get_by_id(session, order_id)

        if role == "admin":
            if order is None:
                raise NotFound("Order not found")
        elif order is None or order.user_id != user_id:
            raise Forbidden("You do not have access to this order")

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def list_user_orders(
        self,
        session: Session,
        user_id: str,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        List orders for the given user (without items).
        """
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return [OrderRead.model_validate(o) for o in orders]

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        List all orders (admin only).
        """
        orders = self.order_repo.list_all(session, skip, limit)
        return [OrderRead.model_validate(o) for o in orders]

    # -------- Admin operations --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        new_status: OrderStatus,
    ) -> OrderRead:
        """
        Admin-only status update following ALLOWED_TRANSITIONS.

        Setting the current status again is a no-op.
        Stock is never touched here.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")

        current = order.status
        if current == new_status:
            return OrderRead.model_validate(order)

        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransition(current, new_status)

        order.status = new_status
        order.updated_at = datetime.now(timezone.utc)
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        logger.info("Order %s moved %s -> %s", order.id, current, new_status)
        return OrderRead.model_validate(order)

    # -------- Helper DTO builder --------

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        item_dtos = [
            OrderItemRead(
                id=it.id,
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                price_at_purchase=it.price_at_purchase,
                line_total=it.price_at_purchase * it.quantity,
            )
            for it in items
        ]

        return OrderWithItemsRead(
            id=order.id,
            user_id=order.user_id,
            status=order.status,  # Literal
            total_amount=order.total_amount,
            shipping_address=order.shipping_address,
            created_at=order.created_at,
            items=item_dtos,
        )
