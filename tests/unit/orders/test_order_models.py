import re

import pytest
from django.db import IntegrityError, transaction

from modules.core.models import ImmutableRecordError
from modules.orders.constants import OrderStatus, ProductionStage
from modules.orders.events import OrderCreated
from modules.orders.models import Order, OrderItem, ProductionStageHistory

pytestmark = pytest.mark.unit


class TestOrder:
    def test_order_number_generated_on_first_save(self):
        order = Order.objects.create()
        assert re.fullmatch(r"PRD-\d{8}-[0-9A-F]{6}", order.order_number)
        assert order.status == OrderStatus.NEW

    def test_order_number_kept_on_later_saves(self):
        order = Order.objects.create()
        number = order.order_number
        order.customer_name = "Renamed"
        order.save()
        assert order.order_number == number

    @pytest.mark.parametrize(
        "status, locked",
        [
            (OrderStatus.NEW, False),
            (OrderStatus.IN_PRODUCTION, False),
            (OrderStatus.COMPLETED, True),
            (OrderStatus.CANCELLED, True),
        ],
    )
    def test_is_locked(self, status, locked):
        assert Order(status=status).is_locked is locked

    def test_registers_and_clears_domain_events(self):
        order = Order(order_number="PRD-20260101-000001")
        assert order.domain_events == []

        event = OrderCreated(aggregate_id=order.id, order_number=order.order_number, item_count=1)
        order.add_domain_event(event)

        assert order.domain_events == [event]
        assert event.event_name == "OrderCreated"

        order.clear_domain_events()
        assert order.domain_events == []


class TestOrderItem:
    def test_defaults_to_first_stage(self, make_product):
        order = Order.objects.create()
        item = OrderItem.objects.create(order=order, product=make_product(), quantity=1)
        assert item.status == ProductionStage.TO_PRODUCE
        assert item.note == ""
        assert not item.is_completed

    def test_quantity_must_be_positive(self, make_product):
        order = Order.objects.create()
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                OrderItem.objects.create(order=order, product=make_product(), quantity=0)


class TestStageHistory:
    def test_rows_are_append_only(self, make_product):
        order = Order.objects.create()
        item = OrderItem.objects.create(order=order, product=make_product(), quantity=1)
        row = ProductionStageHistory.objects.create(order_item=item, stage=ProductionStage.BENCH)

        row.stage = ProductionStage.CASTING
        with pytest.raises(ImmutableRecordError):
            row.save()
        with pytest.raises(ImmutableRecordError):
            row.delete()
        with pytest.raises(ImmutableRecordError):
            ProductionStageHistory.objects.filter(pk=row.pk).update(stage="BENCH")
