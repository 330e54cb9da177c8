# checkout/routers/cart.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from checkout.core.auth import require_auth
from checkout.database import get_session
from checkout.models.user import User
from checkout.repositories.cart_repo import CartRepository
from checkout.repositories.product_repo import ProductRepository
from checkout.schemas.cart import CartSummary, CartItemCreate, CartItemUpdate
from checkout.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get current user's cart summary, priced at current catalog prices.
    """
    return service.get_cart_summary(session, current_user.id)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Add product to the current user's cart.

    Stock is not reserved or checked here; see POST /orders.
    """
    return service.add_to_cart(
        session, current_user.id, payload.product_id, payload.quantity
    )


@router.patch("/{product_id}", response_model=CartSummary)
def update_cart_item(
    product_id: str,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Set the quantity of a product in the cart (<= 0 removes it).
    """
    return service.update_quantity(
        session=session,
        user_id=current_user.id,
        product_id=product_id,
        quantity=payload.quantity,
    )


@router.delete("/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.remove_item(session, current_user.id, product_id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Clear the entire cart.
    """
    return service.clear_cart(session, current_user.id)
