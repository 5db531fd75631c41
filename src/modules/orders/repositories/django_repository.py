"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.

Concurrency control relies on ``select_for_update()`` on the Order row:
every stage change locks its owning order before touching items, so
completion detection for one order is serialized.  On SQLite the
IMMEDIATE transaction mode takes the database write lock instead.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.core.repositories.utils import parse_uuid
from modules.orders.models import Order, OrderItem, ProductionStageHistory
from modules.orders.repositories.interfaces import IOrderRepository
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - ``items`` (required): list of dicts with ``product_id``,
          ``quantity`` and optionally ``note``
        - ``customer_name`` (optional)
        - ``user_id`` (optional)
        """
        order = Order(
            customer_name=data.get("customer_name", ""),
            user_id=data.get("user_id"),
        )
        order.save()

        items = [
            OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                note=item_data.get("note", ""),
            )
            for item_data in data["items"]
        ]
        OrderItem.objects.bulk_create(items)

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded items and their history.

        Uses ``prefetch_related`` for items, items→product and the stage
        history (separate batched queries).  Prevents N+1.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.prefetch_related(
                    "items__product", "items__stage_history"
                )
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters and eager-loaded items.

        Supported filter keys are any ``Order`` field look-ups, e.g.
        ``status`` or ``created_at__range``.
        """
        queryset = Order.objects.prefetch_related("items__product")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def lock_orders(self, ids: Iterable[UUID]) -> List[Order]:
        """Lock orders sorted by PK to prevent deadlocks between batches."""
        return list(
            Order.objects.select_for_update().filter(id__in=set(ids)).order_by("id")
        )

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    def save(self, entity: Order, update_fields: Optional[List[str]] = None) -> Order:
        """Persist an order and hand its domain events to the bus.

        Events are published after commit; a rollback drops them.
        """
        entity.save(update_fields=update_fields)

        events = entity.domain_events
        for event in events:
            event_bus.publish_on_commit(event)
        entity.clear_domain_events()

        logger.debug("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def get_item(self, id: str) -> Optional[OrderItem]:
        try:
            return (
                OrderItem.objects.select_related("order", "product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_item_order_id(self, id: str) -> Optional[UUID]:
        try:
            return (
                OrderItem.objects.filter(id=id)
                .values_list("order_id", flat=True)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def resolve_items(self, ids: Sequence[str]) -> Tuple[List[OrderItem], List[str]]:
        """Resolve a selection, reporting ids that match no item.

        Malformed ids are reported as missing rather than rejected.
        """
        parsed = {str(i): parse_uuid(i) for i in ids}
        found = list(
            OrderItem.objects.select_related("order", "product")
            .filter(id__in={pk for pk in parsed.values() if pk is not None})
            .order_by("id")
        )
        found_ids = {item.id for item in found}
        missing = [raw for raw, pk in parsed.items() if pk not in found_ids]
        return found, missing

    def items_for_order(self, order_id: UUID) -> List[OrderItem]:
        return list(OrderItem.objects.filter(order_id=order_id).order_by("id"))

    def save_item(self, item: OrderItem, update_fields: List[str]) -> OrderItem:
        item.save(update_fields=update_fields)
        return item

    def set_items_stage(self, ids: Sequence[UUID], stage: str) -> int:
        return OrderItem.objects.filter(id__in=list(ids)).update(
            status=stage, updated_at=timezone.now()
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        item_ids: Sequence[UUID],
        stage: str,
        user_id: Optional[int] = None,
    ) -> List[ProductionStageHistory]:
        """Append one stage-history row per item in a single INSERT."""
        rows = ProductionStageHistory.objects.bulk_create(
            [
                ProductionStageHistory(order_item_id=item_id, stage=stage, user_id=user_id)
                for item_id in item_ids
            ]
        )
        logger.debug("order.history_added", stage=stage, rows=len(rows))
        return rows
