"""Stock transaction repository interface.

The ledger is append-only, so the contract exposes inserts and reads
only: there is deliberately no ``save`` or ``delete``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Tuple
from uuid import UUID

if TYPE_CHECKING:
    from modules.stock.models import StockTransaction


class IStockTransactionRepository(ABC):
    """Repository contract for ``StockTransaction`` ledger rows."""

    @abstractmethod
    def add(
        self,
        product_id: UUID,
        type: str,
        quantity: int,
        reason: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> StockTransaction:
        """Append one ledger row."""

    @abstractmethod
    def balance(self, product_id: UUID) -> Tuple[int, int]:
        """Return ``(signed_sum, row_count)`` over the product's ledger."""
