import logging
from uuid import uuid4

import pytest

from modules.orders.events import (
    OrderCancelled,
    OrderCompleted,
    OrderCreated,
    OrderItemStageChanged,
)
from modules.orders.handlers import (
    order_cancelled_handler,
    order_completed_handler,
    order_created_handler,
    order_item_stage_changed_handler,
)
from shared.infrastructure.bus import event_bus

pytestmark = pytest.mark.unit


def _messages(caplog):
    return [record.getMessage() for record in caplog.records]


@pytest.mark.parametrize(
    "handler, event, expected",
    [
        (
            order_created_handler,
            OrderCreated(aggregate_id=uuid4(), order_number="PRD-1", item_count=2),
            "order.event.created",
        ),
        (
            order_cancelled_handler,
            OrderCancelled(aggregate_id=uuid4(), order_number="PRD-2"),
            "order.event.cancelled",
        ),
        (
            order_item_stage_changed_handler,
            OrderItemStageChanged(
                aggregate_id=uuid4(),
                order_item_id="item-1",
                previous_stage="CASTING",
                stage="BENCH",
            ),
            "order.event.stage_changed",
        ),
        (
            order_completed_handler,
            OrderCompleted(aggregate_id=uuid4(), order_number="PRD-3", credited_items=4),
            "order.event.completed",
        ),
    ],
)
def test_handlers_log_event(handler, event, expected, caplog):
    with caplog.at_level(logging.INFO):
        handler.handle(event)

    assert any(expected in message for message in _messages(caplog))


def test_handlers_are_subscribed_on_startup():
    for event_class, handler in [
        (OrderCreated, order_created_handler),
        (OrderCancelled, order_cancelled_handler),
        (OrderItemStageChanged, order_item_stage_changed_handler),
        (OrderCompleted, order_completed_handler),
    ]:
        assert handler in event_bus._handlers[event_class]


def test_stage_change_events_published_after_commit(
    make_product, make_order, caplog, django_capture_on_commit_callbacks
):
    from modules.orders.services import build_order_service

    order = make_order([(make_product(), 1, "CASTING")])
    item = order.items.get()

    with caplog.at_level(logging.INFO):
        with django_capture_on_commit_callbacks(execute=True):
            build_order_service().transition_stage(item.id, "BENCH")

    messages = _messages(caplog)
    changed = [m for m in messages if "order.event.stage_changed" in m]
    assert len(changed) == 1
    assert str(item.id) in changed[0]
    assert "CASTING" in changed[0]
