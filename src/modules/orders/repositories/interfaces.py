"""Order repository interface.

Extends ``IRepository[Order]`` with the methods required by the Order
aggregate: atomic creation with items, item look-ups for the stage
machine, batch stage updates and the append-only stage history.

The workflow components and the Service Layer depend exclusively on this
contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from uuid import UUID

    from modules.orders.models import Order, OrderItem, ProductionStageHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and their
    ProductionStageHistory records.  Mutations must run inside the
    caller's transaction.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``items`` (list of dicts with ``product_id``,
        ``quantity`` and optionally ``note``) and optionally
        ``customer_name`` and ``user_id``.
        """

    @abstractmethod
    def save(self, entity: Order, update_fields: Optional[List[str]] = None) -> Order:
        """Persist an order and publish its pending domain events on commit."""

    @abstractmethod
    def lock_orders(self, ids: Iterable[UUID]) -> List[Order]:
        """Lock several orders, always in primary-key order."""

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @abstractmethod
    def get_item(self, id: str) -> Optional[OrderItem]:
        """Retrieve an item with its product and order joined."""

    @abstractmethod
    def get_item_order_id(self, id: str) -> Optional[UUID]:
        """Return the id of the order owning item *id*."""

    @abstractmethod
    def resolve_items(self, ids: Sequence[str]) -> Tuple[List[OrderItem], List[str]]:
        """Return ``(found_items, missing_ids)`` for a selection of ids."""

    @abstractmethod
    def items_for_order(self, order_id: UUID) -> List[OrderItem]:
        """Fresh read of every item of an order."""

    @abstractmethod
    def save_item(self, item: OrderItem, update_fields: List[str]) -> OrderItem:
        """Persist the given fields of an item."""

    @abstractmethod
    def set_items_stage(self, ids: Sequence[UUID], stage: str) -> int:
        """Move every item in *ids* to *stage* in one statement."""

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @abstractmethod
    def add_history(
        self,
        item_ids: Sequence[UUID],
        stage: str,
        user_id: Optional[int] = None,
    ) -> List[ProductionStageHistory]:
        """Append one history row per item."""
