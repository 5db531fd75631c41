"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCompleted,
    OrderCreated,
    OrderItemStageChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            item_count=event.item_count,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
        )


class OrderItemStageChangedHandler(IEventHandler[OrderItemStageChanged]):
    def handle(self, event: OrderItemStageChanged) -> None:
        logger.info(
            "order.event.stage_changed",
            order_id=str(event.aggregate_id),
            order_item_id=event.order_item_id,
            previous_stage=event.previous_stage,
            stage=event.stage,
            user_id=event.user_id,
        )


class OrderCompletedHandler(IEventHandler[OrderCompleted]):
    def handle(self, event: OrderCompleted) -> None:
        logger.info(
            "order.event.completed",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            credited_items=event.credited_items,
        )


order_created_handler = OrderCreatedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_item_stage_changed_handler = OrderItemStageChangedHandler()
order_completed_handler = OrderCompletedHandler()
