from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy.orm import Session

from pos_backend.models.product import Product
from pos_backend.services.modifier_errors import UnknownProduct


class ProductCatalog(Protocol):
    def get_product_category(self, product_id: int) -> Optional[int]:
        """Return the product's category id (``None`` if uncategorised).

        Raises ``UnknownProduct`` when the product does not exist.
        """


class SqlProductCatalog:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_product_category(self, product_id: int) -> Optional[int]:
        row = self.db.query(Product.id, Product.category_id).filter(Product.id == product_id).first()
        if row is None:
            raise UnknownProduct(product_id)
        return row.category_id
