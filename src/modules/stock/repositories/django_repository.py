"""Django ORM implementation of the stock transaction repository."""

from __future__ import annotations

from typing import Optional, Tuple
from uuid import UUID

import structlog
from django.db import models
from django.db.models.functions import Coalesce

from modules.stock.constants import TransactionType
from modules.stock.models import StockTransaction
from modules.stock.repositories.interfaces import IStockTransactionRepository

logger = structlog.get_logger(__name__)


class StockTransactionDjangoRepository(IStockTransactionRepository):
    """Concrete ledger repository backed by Django ORM."""

    def add(
        self,
        product_id: UUID,
        type: str,
        quantity: int,
        reason: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> StockTransaction:
        entry = StockTransaction.objects.create(
            product_id=product_id,
            type=type,
            quantity=quantity,
            reason=reason,
            user_id=user_id,
        )
        logger.info(
            "stock.ledger_appended",
            transaction_id=str(entry.id),
            product_id=str(product_id),
            type=type,
            quantity=quantity,
        )
        return entry

    def balance(self, product_id: UUID) -> Tuple[int, int]:
        totals = StockTransaction.objects.filter(product_id=product_id).aggregate(
            total_in=Coalesce(
                models.Sum("quantity", filter=models.Q(type=TransactionType.IN)),
                0,
                output_field=models.IntegerField(),
            ),
            total_out=Coalesce(
                models.Sum("quantity", filter=models.Q(type=TransactionType.OUT)),
                0,
                output_field=models.IntegerField(),
            ),
            rows=models.Count("id"),
        )
        return totals["total_in"] - totals["total_out"], totals["rows"]
