"""Order service layer (Use Cases).

Orchestrates order creation, look-ups, note editing and cancellation,
and is the caller-facing entry point for stage transitions.  All write
operations are atomic; the service defines the unit-of-work boundary.

Business rules enforced:
- An order has at least one item and every product must exist; creation
  is all-or-nothing.
- New orders start as NEW with every item at TO_PRODUCE.
- Notes are free text and never touch the workflow.
- Only NEW and IN_PRODUCTION orders can be cancelled; cancelling moves no
  stock (stock is only credited on completion).
- Stage transitions are retried as a whole when the database reports a
  lock conflict (see ``modules.core.concurrency``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.concurrency import run_with_retry
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCancelled, OrderCreated
from modules.orders.exceptions import OrderItemNotFound, OrderLocked, OrderNotFound
from modules.products.exceptions import ProductsNotFound

if TYPE_CHECKING:
    from modules.orders.dtos import BulkTransitionResult, CreateOrderDTO
    from modules.orders.models import Order, OrderItem
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.workflow import (
        BulkTransitionOrchestrator,
        ProductionStageMachine,
    )
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and workflow components via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        stage_machine: ProductionStageMachine,
        bulk_orchestrator: BulkTransitionOrchestrator,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._stage_machine = stage_machine
        self._bulk = bulk_orchestrator

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, user_id: Optional[int] = None) -> Order:
        """Create a production order with all its items.

        Raises:
            ProductsNotFound: some referenced products do not exist.
        """
        log = logger.bind(item_count=len(dto.items), user_id=user_id)
        log.info("order.creation_started")

        missing = self._product_repo.missing_ids(str(item.product_id) for item in dto.items)
        if missing:
            log.warning("order.products_missing", missing_ids=sorted(missing))
            raise ProductsNotFound(missing)

        order = self._order_repo.create(
            {
                "customer_name": dto.customer_name,
                "user_id": user_id,
                "items": [
                    {
                        "product_id": item.product_id,
                        "quantity": item.quantity,
                        "note": item.note,
                    }
                    for item in dto.items
                ],
            }
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_number=order.order_number,
                item_count=len(dto.items),
            )
        )
        self._order_repo.save(order, update_fields=[])

        log.info("order.created", order_id=str(order.id), order_number=order.order_number)

        # Re-fetch with prefetch for output
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def cancel_order(self, order_id: UUID | str) -> Order:
        """Cancel an order that has not finished production.

        Raises:
            OrderNotFound: order does not exist.
            OrderLocked: the order is already COMPLETED or CANCELLED.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order_id), current_status=order.status)

        if order.is_locked:
            log.warning("order.cancel_not_allowed")
            raise OrderLocked(f"Cannot cancel order in status {order.status}.")

        order.status = OrderStatus.CANCELLED
        order.add_domain_event(
            OrderCancelled(aggregate_id=order.id, order_number=order.order_number)
        )
        self._order_repo.save(order, update_fields=["status"])

        log.info("order.cancelled")
        return self._order_repo.get_by_id(str(order_id)) or order

    @transaction.atomic
    def update_item_note(self, order_item_id: UUID | str, note: str) -> OrderItem:
        """Replace an item's note.

        Raises:
            OrderItemNotFound: the item does not exist.
        """
        item = self._order_repo.get_item(str(order_item_id))
        if not item:
            raise OrderItemNotFound(f"Order item {order_item_id} not found.")

        item.note = note or ""
        self._order_repo.save_item(item, ["note"])
        logger.info("order.item_note_updated", order_item_id=str(item.id))
        return item

    def transition_stage(
        self,
        order_item_id: UUID | str,
        target_stage: Any,
        user_id: Optional[int] = None,
    ) -> OrderItem:
        """Single-item stage change, retried on lock conflicts."""
        return run_with_retry(
            lambda: self._stage_machine.transition(order_item_id, target_stage, user_id=user_id),
            operation="order.transition_stage",
        )

    def bulk_transition_stage(
        self,
        order_item_ids: Iterable[UUID | str],
        target_stage: Any,
        user_id: Optional[int] = None,
    ) -> BulkTransitionResult:
        """Batch stage change, retried on lock conflicts."""
        ids = list(order_item_ids)
        return run_with_retry(
            lambda: self._bulk.bulk_transition(ids, target_stage, user_id=user_id),
            operation="order.bulk_transition_stage",
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)


def build_order_service() -> OrderService:
    """Wire the service with its Django ORM repositories."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.orders.workflow import build_workflow
    from modules.products.repositories.django_repository import (
        ProductDjangoRepository,
    )

    order_repository = OrderDjangoRepository()
    stage_machine, bulk_orchestrator = build_workflow(order_repository=order_repository)
    return OrderService(
        order_repository=order_repository,
        product_repository=ProductDjangoRepository(),
        stage_machine=stage_machine,
        bulk_orchestrator=bulk_orchestrator,
    )
