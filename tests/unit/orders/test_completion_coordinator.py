"""Unit tests for CompletionCoordinator.

The coordinator is the only place stock is credited for production, so
the tests focus on the at-most-once guarantee.
"""

from __future__ import annotations

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from django.db import transaction

from modules.orders.constants import OrderStatus, ProductionStage
from modules.orders.exceptions import OrderNotFound
from modules.orders.models import OrderItem
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.workflow import CompletionCoordinator
from modules.stock.constants import TransactionType
from modules.stock.exceptions import InsufficientStock
from modules.stock.models import StockTransaction
from modules.stock.services import build_stock_ledger_service

pytestmark = pytest.mark.unit


@pytest.fixture()
def coordinator():
    return CompletionCoordinator(OrderDjangoRepository(), build_stock_ledger_service())


def _credits(order):
    return StockTransaction.objects.filter(
        type=TransactionType.IN, reason=f"order completed: {order.order_number}"
    )


class TestEvaluateCompletion:
    def test_completes_when_every_item_is_completed(
        self, coordinator, make_product, make_order, user
    ):
        ring, chain = make_product(), make_product()
        order = make_order(
            [(ring, 3, ProductionStage.COMPLETED), (chain, 2, ProductionStage.COMPLETED)]
        )

        with transaction.atomic():
            completed = coordinator.evaluate_completion(order.id, user_id=user.pk)

        assert completed is True
        order.refresh_from_db()
        assert order.status == OrderStatus.COMPLETED
        assert order.completed_at is not None
        credits = _credits(order)
        assert {(c.product_id, c.quantity) for c in credits} == {(ring.id, 3), (chain.id, 2)}
        assert all(c.user_id == user.pk for c in credits)

    def test_noop_while_items_are_pending(self, coordinator, make_product, make_order):
        order = make_order(
            [(make_product(), 1, ProductionStage.COMPLETED), (make_product(), 1)]
        )

        with transaction.atomic():
            assert coordinator.evaluate_completion(order.id) is False

        order.refresh_from_db()
        assert order.status == OrderStatus.NEW
        assert order.completed_at is None
        assert not _credits(order).exists()

    def test_reevaluation_is_a_noop(self, coordinator, make_product, make_order):
        product = make_product()
        order = make_order([(product, 4, ProductionStage.COMPLETED)])

        with transaction.atomic():
            assert coordinator.evaluate_completion(order.id) is True
        order.refresh_from_db()
        completed_at = order.completed_at

        for _ in range(3):
            with transaction.atomic():
                assert coordinator.evaluate_completion(order.id) is False

        order.refresh_from_db()
        product.refresh_from_db()
        assert order.completed_at == completed_at
        assert _credits(order).count() == 1
        assert product.current_stock == 4

    def test_same_product_on_two_lines_is_credited_per_line(
        self, coordinator, make_product, make_order
    ):
        product = make_product()
        order = make_order(
            [(product, 1, ProductionStage.COMPLETED), (product, 5, ProductionStage.COMPLETED)]
        )

        with transaction.atomic():
            coordinator.evaluate_completion(order.id)

        product.refresh_from_db()
        assert sorted(c.quantity for c in _credits(order)) == [1, 5]
        assert product.current_stock == 6

    def test_cancelled_order_is_never_completed(self, coordinator, make_product, make_order):
        order = make_order([(make_product(), 1, ProductionStage.COMPLETED)])
        order.status = OrderStatus.CANCELLED
        order.save(update_fields=["status"])

        with transaction.atomic():
            assert coordinator.evaluate_completion(order.id) is False

        assert not _credits(order).exists()

    def test_requires_an_active_transaction(self, coordinator, monkeypatch):
        monkeypatch.setattr("modules.orders.workflow.in_atomic_block", lambda: False)

        with pytest.raises(RuntimeError):
            coordinator.evaluate_completion(uuid4())

    def test_unknown_order(self, coordinator):
        with transaction.atomic():
            with pytest.raises(OrderNotFound):
                coordinator.evaluate_completion(uuid4())


class TestCreditFailure:
    def test_failed_credit_rolls_back_completion(self, make_product, make_order):
        order = make_order([(make_product(), 2, ProductionStage.COMPLETED)])
        ledger = MagicMock()
        ledger.apply_transaction.side_effect = InsufficientStock("RING-001", 2, 0)
        coordinator = CompletionCoordinator(OrderDjangoRepository(), ledger)

        with pytest.raises(InsufficientStock):
            with transaction.atomic():
                coordinator.evaluate_completion(order.id)

        order.refresh_from_db()
        assert order.status == OrderStatus.NEW
        assert order.completed_at is None
        assert OrderItem.objects.filter(order=order).count() == 1
