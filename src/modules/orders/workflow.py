"""Production workflow: stage machine, completion coordinator, bulk orchestrator.

All three components run inside the caller's ``transaction.atomic`` block
and lock the owning Order row(s) before reading or writing items.  The
order lock is what serializes completion detection: two transactions that
complete different items of the same order queue behind each other, and
the second one sees the first one's COMPLETED status.

Lock order: Order rows (sorted by PK), then Product rows (sorted by PK
across every order completed in the same transaction, taken by the
stock ledger during the completion credit).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, List, NamedTuple, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.concurrency import in_atomic_block
from modules.orders.constants import TERMINAL_STAGE, OrderStatus, ProductionStage
from modules.orders.dtos import BulkTransitionResult
from modules.orders.events import OrderCompleted, OrderItemStageChanged
from modules.orders.exceptions import (
    EmptySelection,
    InvalidStage,
    ItemsNotFound,
    OrderItemNotFound,
    OrderLocked,
    OrderNotFound,
)
from modules.stock.constants import COMPLETION_REASON_TEMPLATE, TransactionType

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.stock.services import StockLedgerService

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Shared rules
# ---------------------------------------------------------------------------


def validate_stage(value: Any) -> str:
    """Return *value* as a production stage, or raise ``InvalidStage``."""
    if value not in ProductionStage.values:
        raise InvalidStage(
            f"Stage must be one of {ProductionStage.values}, got {value!r}."
        )
    return ProductionStage(value).value


def ensure_transition_allowed(order: Order, stage: str) -> None:
    """Reject stage changes on orders that are finished.

    A COMPLETED order only accepts a repeated COMPLETED request, which
    appends history and changes nothing else.  CANCELLED refuses all.
    """
    if order.status == OrderStatus.CANCELLED:
        raise OrderLocked(f"Order {order.order_number} is cancelled.")
    if order.status == OrderStatus.COMPLETED and stage != TERMINAL_STAGE:
        raise OrderLocked(
            f"Order {order.order_number} is completed; its items cannot move to {stage}."
        )


def _promote_if_new(order: Order) -> List[str]:
    """NEW becomes IN_PRODUCTION on the first movement of any item."""
    if order.status != OrderStatus.NEW:
        return []
    order.status = OrderStatus.IN_PRODUCTION
    logger.info(
        "order.production_started",
        order_id=str(order.id),
        order_number=order.order_number,
    )
    return ["status"]


class _Credit(NamedTuple):
    product_id: UUID
    quantity: int
    reason: str


# ---------------------------------------------------------------------------
# Completion Coordinator
# ---------------------------------------------------------------------------


class CompletionCoordinator:
    """Completes an order and credits its output stock exactly once."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        stock_ledger: StockLedgerService,
    ) -> None:
        self._order_repo = order_repository
        self._stock_ledger = stock_ledger

    def evaluate_completion(self, order_id: UUID | str, user_id: Optional[int] = None) -> bool:
        """Complete the order if every item reached the terminal stage.

        Must run inside an atomic block: the order lock taken here has to
        cover the status guard, the item re-scan and the stock credit.

        Returns ``True`` only on the call that completed the order; an
        order that is already COMPLETED (or not yet fully completed) is a
        no-op returning ``False``.

        Raises:
            RuntimeError: called outside a transaction.
            OrderNotFound: the order does not exist.
        """
        return bool(self.evaluate_completions([order_id], user_id=user_id))

    def evaluate_completions(
        self, order_ids: Iterable[UUID | str], user_id: Optional[int] = None
    ) -> List[UUID]:
        """Evaluate several orders and credit all of them in one pass.

        Credits from every completed order are applied sorted by product
        id, so product row locks follow one global order across the batch.

        Returns the ids of the orders completed by this call.
        """
        if not in_atomic_block():
            raise RuntimeError("evaluate_completion must run inside transaction.atomic().")

        completed: List[UUID] = []
        credits: List[_Credit] = []
        for order_id in order_ids:
            order_credits = self._complete_if_done(order_id)
            if order_credits is not None:
                completed.append(order_credits[0])
                credits.extend(order_credits[1])

        for credit in sorted(credits, key=lambda c: c.product_id):
            self._stock_ledger.apply_transaction(
                credit.product_id,
                TransactionType.IN,
                credit.quantity,
                reason=credit.reason,
                user_id=user_id,
            )
        return completed

    def _complete_if_done(
        self, order_id: UUID | str
    ) -> Optional[tuple[UUID, List[_Credit]]]:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), order_number=order.order_number)

        if order.is_completed:
            log.debug("order.completion_already_applied")
            return None
        if order.status == OrderStatus.CANCELLED:
            return None

        items = self._order_repo.items_for_order(order.id)
        pending = [item for item in items if not item.is_completed]
        if not items or pending:
            log.debug("order.completion_pending", pending_items=len(pending))
            return None

        order.status = OrderStatus.COMPLETED
        order.completed_at = timezone.now()
        order.add_domain_event(
            OrderCompleted(
                aggregate_id=order.id,
                order_number=order.order_number,
                credited_items=len(items),
            )
        )
        self._order_repo.save(order, update_fields=["status", "completed_at"])
        log.info("order.completed", credited_items=len(items))

        reason = COMPLETION_REASON_TEMPLATE.format(order_number=order.order_number)
        return order.id, [_Credit(item.product_id, item.quantity, reason) for item in items]


# ---------------------------------------------------------------------------
# Production Stage Machine
# ---------------------------------------------------------------------------


class ProductionStageMachine:
    """Moves a single item to any stage of the production sequence.

    Jumps are not restricted to adjacent stages, forwards or backwards.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        completion_coordinator: CompletionCoordinator,
    ) -> None:
        self._order_repo = order_repository
        self._completion = completion_coordinator

    @transaction.atomic
    def transition(
        self,
        order_item_id: UUID | str,
        target_stage: Any,
        user_id: Optional[int] = None,
    ) -> OrderItem:
        """Record history, move the item and derive the order status.

        Raises:
            InvalidStage: *target_stage* is not a production stage.
            OrderItemNotFound: the item does not exist.
            OrderLocked: the owning order is completed or cancelled.
        """
        stage = validate_stage(target_stage)

        order_id = self._order_repo.get_item_order_id(str(order_item_id))
        if order_id is None:
            raise OrderItemNotFound(f"Order item {order_item_id} not found.")

        # Lock the order before reading the item so siblings serialize.
        order = self._order_repo.get_for_update(str(order_id))
        item = self._order_repo.get_item(str(order_item_id))
        if order is None or item is None:
            raise OrderItemNotFound(f"Order item {order_item_id} not found.")

        ensure_transition_allowed(order, stage)

        log = logger.bind(
            order_item_id=str(item.id),
            order_id=str(order.id),
            previous_stage=item.status,
            stage=stage,
        )

        previous = item.status
        self._order_repo.add_history([item.id], stage, user_id=user_id)
        item.status = stage
        self._order_repo.save_item(item, ["status"])

        changed = _promote_if_new(order)
        order.add_domain_event(
            OrderItemStageChanged(
                aggregate_id=order.id,
                order_item_id=str(item.id),
                previous_stage=previous,
                stage=stage,
                user_id=user_id,
            )
        )
        self._order_repo.save(order, update_fields=changed)
        log.info("order.stage_changed")

        if stage == TERMINAL_STAGE:
            self._completion.evaluate_completion(order.id, user_id=user_id)

        return self._order_repo.get_item(str(item.id))


# ---------------------------------------------------------------------------
# Bulk Transition Orchestrator
# ---------------------------------------------------------------------------


class BulkTransitionOrchestrator:
    """Applies one stage to a batch of items as a single unit of work."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        completion_coordinator: CompletionCoordinator,
    ) -> None:
        self._order_repo = order_repository
        self._completion = completion_coordinator

    @transaction.atomic
    def bulk_transition(
        self,
        order_item_ids: Iterable[UUID | str],
        target_stage: Any,
        user_id: Optional[int] = None,
    ) -> BulkTransitionResult:
        """Move every selected item, then evaluate each touched order once.

        All-or-nothing: a missing id, a locked order or a failing stock
        credit rolls back the whole batch.

        Raises:
            EmptySelection: no ids were given.
            InvalidStage: *target_stage* is not a production stage.
            ItemsNotFound: some ids do not resolve (``missing_ids``).
            OrderLocked: an owning order is completed or cancelled.
        """
        ids = list(dict.fromkeys(str(i) for i in order_item_ids))
        if not ids:
            raise EmptySelection("Select at least one order item.")
        stage = validate_stage(target_stage)

        items, missing = self._order_repo.resolve_items(ids)
        if missing:
            logger.warning("order.bulk_items_missing", missing_ids=missing)
            raise ItemsNotFound(missing)

        orders = self._order_repo.lock_orders({item.order_id for item in items})
        for order in orders:
            ensure_transition_allowed(order, stage)

        # Fresh read under the order locks.
        items, _ = self._order_repo.resolve_items(ids)
        item_ids = [item.id for item in items]

        self._order_repo.add_history(item_ids, stage, user_id=user_id)
        updated = self._order_repo.set_items_stage(item_ids, stage)

        for order in orders:
            changed = _promote_if_new(order)
            for item in items:
                if item.order_id == order.id:
                    order.add_domain_event(
                        OrderItemStageChanged(
                            aggregate_id=order.id,
                            order_item_id=str(item.id),
                            previous_stage=item.status,
                            stage=stage,
                            user_id=user_id,
                        )
                    )
            self._order_repo.save(order, update_fields=changed)

        if stage == TERMINAL_STAGE:
            self._completion.evaluate_completions(
                [order.id for order in orders], user_id=user_id
            )

        logger.info(
            "order.bulk_stage_changed",
            stage=stage,
            updated_count=updated,
            order_count=len(orders),
        )
        refreshed, _ = self._order_repo.resolve_items(ids)
        return BulkTransitionResult(updated_count=updated, items=refreshed)


def build_workflow(
    order_repository: Optional[IOrderRepository] = None,
    stock_ledger: Optional[StockLedgerService] = None,
) -> tuple[ProductionStageMachine, BulkTransitionOrchestrator]:
    """Wire the workflow components with their Django ORM collaborators."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.stock.services import build_stock_ledger_service

    order_repository = order_repository or OrderDjangoRepository()
    stock_ledger = stock_ledger or build_stock_ledger_service()
    coordinator = CompletionCoordinator(order_repository, stock_ledger)
    return (
        ProductionStageMachine(order_repository, coordinator),
        BulkTransitionOrchestrator(order_repository, coordinator),
    )
