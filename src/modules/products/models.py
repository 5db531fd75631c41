"""Product model: catalog identity plus the cached stock level.

Business rules implemented:
- ``sku`` is globally unique, normalised to upper case and immutable
  once the product exists.
- ``current_stock`` is never negative (DB check constraint).
- ``current_stock`` is a materialised cache of the stock ledger.  It is
  written only by ``modules.stock.services.StockLedgerService``, in the
  same transaction as the ledger row that justifies the change.

Catalog CRUD (names, images, categories) is owned by the surrounding
application; this engine only reads identity and mutates the cache.
"""

from __future__ import annotations

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class Product(BaseModel):
    """A finished-goods SKU that production orders manufacture."""

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    current_stock = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "products"
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(current_stock__gte=0),
                name="products_current_stock_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.current_stock is not None and self.current_stock < 0:
            raise ValidationError({"current_stock": "Stock cannot be negative."})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        if not is_new and self.sku:
            stored_sku = (
                Product.objects.filter(pk=self.pk)
                .values_list("sku", flat=True)
                .first()
            )
            if stored_sku is not None and stored_sku != self.sku:
                raise ValidationError({"sku": "SKU cannot be changed."})
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product.created",
                product_id=str(self.id),
                sku=self.sku,
            )

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
