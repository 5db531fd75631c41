"""Domain events for the Orders bounded context.

Published with ``event_bus.publish_on_commit`` so handlers only ever
see committed state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    order_number: str
    item_count: int


@dataclass(frozen=True, kw_only=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled."""

    order_number: str


@dataclass(frozen=True, kw_only=True)
class OrderItemStageChanged(DomainEvent):
    """Raised once per item per stage transition (aggregate: the order)."""

    order_item_id: str
    previous_stage: str
    stage: str
    user_id: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class OrderCompleted(DomainEvent):
    """Raised when the last item of an order reaches the terminal stage."""

    order_number: str
    credited_items: int
