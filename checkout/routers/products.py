# checkout/routers/products.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from checkout.core.auth import require_admin
from checkout.database import get_session
from checkout.repositories.product_repo import ProductRepository
from checkout.schemas.product import ProductCreate, ProductRead, ProductUpdate
from checkout.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List products (public), ordered by name.
    """
    return service.list_products(session, skip=skip, limit=limit)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: str,
    session: Session = Depends(get_session),
):
    return service.get_product(session, product_id)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a new product (admin only).
    """
    return service.create_product(session, payload)


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update name, description, price or stock (admin only).
    Setting stock_quantity is how products are restocked.
    """
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: str,
    session: Session = Depends(get_session),
):
    """
    Delete a product (admin only).

    Refused with 409 while any order still references it.
    """
    service.delete_product(session, product_id)
    return None
