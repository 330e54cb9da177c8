# checkout/routers/orders.py
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlmodel import Session

from checkout.core.auth import require_admin, require_auth
from checkout.database import get_session
from checkout.models.user import User
from checkout.repositories.cart_repo import CartRepository
from checkout.repositories.order_repo import OrderRepository
from checkout.repositories.product_repo import ProductRepository
from checkout.schemas.order import (
    OrderCreate,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from checkout.services.notification_service import send_order_confirmation
from checkout.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
cart_repo = CartRepository()
product_repo = ProductRepository()
service = OrderService(order_repo, cart_repo, product_repo)


# -------- User-facing endpoints --------


@router.post(
    "",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def place_order(
    payload: OrderCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Place an order.

    - `items` given: order exactly those lines.
    - `items` omitted: order the current cart, which is emptied on success.

    Prices and stock are taken from the catalog inside the checkout
    transaction. A 409 `stock_changed` answer may be retried as-is.
    """
    order = service.place_order(session, current_user.id, payload)
    background_tasks.add_task(send_order_confirmation, order)
    return order


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items), newest first.
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order with items.

    Customers only see their own orders (403 otherwise); admins see all.
    """
    return service.get_order(session, order_id, current_user.id, current_user.role)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders (admin only).
    """
    return service.list_all_orders(session, skip, limit)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only).

      pending    -> processing, cancelled

      processing -> completed, cancelled

      completed  -> (no change)

      cancelled  -> (no change)

    """
    return service.update_status(session, order_id, payload.status)
