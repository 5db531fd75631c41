"""Stock ledger model.

``StockTransaction`` is the source of truth for stock: an append-only log
of signed movements.  ``Product.current_stock`` is a cache of
``sum(IN) - sum(OUT)`` over a product's rows and is only ever written in
the same transaction that inserts the row justifying the change.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import AppendOnlyModel
from modules.stock.constants import TransactionType


class StockTransaction(AppendOnlyModel):
    """One immutable stock movement."""

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="stock_transactions",
    )
    type = models.CharField(max_length=3, choices=TransactionType.choices)
    quantity = models.PositiveIntegerField()
    reason = models.CharField(max_length=255, null=True, blank=True)  # noqa: DJ01
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_transactions",
    )

    class Meta:
        db_table = "stock_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["product", "-created_at"],
                name="stock_tx_product_created_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="stock_tx_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(type__in=["IN", "OUT"]),
                name="stock_tx_type_valid",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.quantity} x {self.product_id}"
