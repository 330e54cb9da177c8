# checkout/services/product_service.py
import logging

from sqlmodel import Session

from checkout.core.errors import ProductChanged, ProductInUse, ProductNotFound
from checkout.models.product import Product
from checkout.repositories.product_repo import ProductRepository
from checkout.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


class ProductService:
    """
    Business logic for the product catalog.

    Responsibilities:
      - catalog listing / lookup
      - admin create, update (price changes and restocks), delete
      - refuse deletion of products referenced by past orders
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Product]:
        return self.repo.list(session, skip=skip, limit=limit)

    def get_product(self, session: Session, product_id: str) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        data = payload.model_dump(exclude_none=True)
        product = self.repo.create(session, Product(**data))
        session.commit()
        session.refresh(product)

        logger.info(
            "Product %s created (price %s, stock %s)",
            product.id,
            product.price,
            product.stock_quantity,
        )
        return product

    def update_product(
        self,
        session: Session,
        product_id: str,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update of a product, guarded by `version`.

        The write only lands if the row still has the version the caller
        saw (payload.version, or the one read here). A checkout or another
        edit committed in between makes it fail with ProductChanged instead
        of overwriting that change. Orders already placed keep their
        price_at_purchase.
        """
        product = self.get_product(session, product_id)
        expected_version = payload.version or product.version

        values = payload.model_dump(exclude_none=True, exclude={"version"})
        if not values:
            return product

        try:
            applied = self.repo.update_if_version(
                session, product_id, expected_version, values
            )
            if not applied:
                raise ProductChanged(product_id, expected_version)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info(
            "Product %s updated (version %s -> %s): %s",
            product_id,
            expected_version,
            expected_version + 1,
            ", ".join(sorted(values)),
        )
        return self.repo.get_by_id(session, product_id, refresh=True)

    def delete_product(self, session: Session, product_id: str) -> None:
        """
        Delete a product that no order references.
        Cart lines pointing at it are dropped with it.
        """
        product = self.get_product(session, product_id)

        in_use = self.repo.count_order_items(session, product_id)
        if in_use:
            raise ProductInUse(product_id, in_use)

        self.repo.delete_cart_lines(session, product_id)
        self.repo.delete(session, product)
        session.commit()
        logger.info("Product %s deleted", product_id)
