"""Domain events for the stock ledger."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class StockTransactionRecorded(DomainEvent):
    """Raised after a ledger row and its stock update commit.

    ``aggregate_id`` is the product id.
    """

    transaction_id: UUID
    type: str
    quantity: int
    current_stock: int
