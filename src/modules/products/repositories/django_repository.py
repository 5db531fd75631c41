"""Django ORM implementation of the Product repository.

Error handling follows the Null Object pattern: look-ups return ``None``
for missing or malformed identifiers instead of raising, and the Service
Layer decides which domain error that becomes.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Set

import structlog
from django.core.exceptions import ValidationError

from modules.core.repositories.utils import parse_uuid
from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE).

        SQLite ignores ``FOR UPDATE``; there the IMMEDIATE transaction mode
        already holds the database write lock.
        """
        try:
            return Product.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        queryset = Product.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def missing_ids(self, ids: Iterable[str]) -> Set[str]:
        requested = {str(i) for i in ids}
        parsed = {parse_uuid(i) for i in requested} - {None}
        found = {
            str(pk) for pk in Product.objects.filter(id__in=parsed).values_list("id", flat=True)
        }
        return {i for i in requested if str(parse_uuid(i)) not in found}

    def set_current_stock(self, product: Product, new_stock: int) -> Product:
        product.current_stock = new_stock
        product.save(update_fields=["current_stock"])
        logger.info(
            "product.stock_cached",
            product_id=str(product.id),
            current_stock=new_stock,
        )
        return product

    def low_stock(self, threshold: int) -> List[Product]:
        return list(Product.objects.filter(current_stock__lte=threshold))
