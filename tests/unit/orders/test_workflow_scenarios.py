"""End-to-end workflow scenarios through ``OrderService``.

Each test walks a realistic sequence of operator actions and then checks
the ledger invariant: ``current_stock`` equals the signed ledger sum.
"""

from __future__ import annotations

import pytest

from modules.orders.constants import PRODUCTION_STAGES, OrderStatus, ProductionStage
from modules.orders.models import ProductionStageHistory
from modules.orders.services import build_order_service
from modules.stock.constants import TransactionType
from modules.stock.exceptions import InsufficientStock
from modules.stock.models import StockTransaction
from modules.stock.services import build_stock_ledger_service

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return build_order_service()


@pytest.fixture()
def ledger():
    return build_stock_ledger_service()


def _assert_ledger_consistent(ledger, *products):
    for product in products:
        audit = ledger.verify_ledger(product.id)
        assert audit.consistent, audit


def test_withdrawal_beyond_stock_is_rejected(ledger, make_product):
    product = make_product(stock=10)

    with pytest.raises(InsufficientStock):
        ledger.apply_transaction(product.id, TransactionType.OUT, 15)

    product.refresh_from_db()
    assert product.current_stock == 10
    _assert_ledger_consistent(ledger, product)


def test_bulk_completion_credits_each_item_once(service, ledger, make_product, make_order):
    ring, pendant = make_product(), make_product()
    order = make_order(
        [(ring, 3, ProductionStage.CASTING), (pendant, 2, ProductionStage.CASTING)]
    )
    ids = list(order.items.values_list("id", flat=True))

    result = service.bulk_transition_stage(ids, ProductionStage.COMPLETED)

    assert result.updated_count == 2
    order.refresh_from_db()
    assert order.status == OrderStatus.COMPLETED
    assert order.completed_at is not None
    ins = StockTransaction.objects.filter(type=TransactionType.IN)
    assert {(tx.product_id, tx.quantity) for tx in ins} == {(ring.id, 3), (pendant.id, 2)}
    _assert_ledger_consistent(ledger, ring, pendant)


def test_repeating_bulk_completion_changes_nothing(service, ledger, make_product, make_order):
    ring, pendant = make_product(), make_product()
    order = make_order(
        [(ring, 3, ProductionStage.CASTING), (pendant, 2, ProductionStage.CASTING)]
    )
    ids = list(order.items.values_list("id", flat=True))
    service.bulk_transition_stage(ids, ProductionStage.COMPLETED)
    order.refresh_from_db()
    completed_at = order.completed_at

    result = service.bulk_transition_stage(ids, ProductionStage.COMPLETED)

    assert all(item.status == ProductionStage.COMPLETED for item in result.items)
    order.refresh_from_db()
    assert order.completed_at == completed_at
    assert StockTransaction.objects.filter(type=TransactionType.IN).count() == 2
    assert ProductionStageHistory.objects.filter(order_item_id__in=ids).count() == 4
    _assert_ledger_consistent(ledger, ring, pendant)


def test_single_jump_to_packaging(service, make_product, make_order):
    order = make_order([(make_product(), 1)])
    item = order.items.get()

    updated = service.transition_stage(item.id, ProductionStage.PACKAGING)

    assert updated.status == ProductionStage.PACKAGING
    history = ProductionStageHistory.objects.filter(order_item=item)
    assert list(history.values_list("stage", flat=True)) == [ProductionStage.PACKAGING]
    order.refresh_from_db()
    assert order.status == OrderStatus.IN_PRODUCTION


def test_mixed_single_and_bulk_completion_credits_once(
    service, ledger, make_product, make_order
):
    products = [make_product(stock=1) for _ in range(3)]
    order = make_order([(p, i + 1) for i, p in enumerate(products)])
    first, second, third = order.items.order_by("id")

    for stage in PRODUCTION_STAGES[1:]:
        service.transition_stage(first.id, stage)
    service.bulk_transition_stage([second.id, third.id], ProductionStage.BENCH)
    service.bulk_transition_stage([first.id, second.id], ProductionStage.COMPLETED)
    service.transition_stage(third.id, ProductionStage.COMPLETED)
    service.bulk_transition_stage(
        [first.id, second.id, third.id], ProductionStage.COMPLETED
    )

    order.refresh_from_db()
    assert order.status == OrderStatus.COMPLETED
    credits = StockTransaction.objects.filter(
        reason=f"order completed: {order.order_number}"
    )
    assert sorted(c.quantity for c in credits) == [1, 2, 3]
    for product, expected in zip(products, [2, 3, 4]):
        product.refresh_from_db()
        assert product.current_stock == expected
    _assert_ledger_consistent(ledger, *products)


def test_sales_after_completion_keep_ledger_consistent(
    service, ledger, make_product, make_order
):
    product = make_product(stock=5)
    order = make_order([(product, 4, ProductionStage.PACKAGING)])
    service.transition_stage(order.items.get().id, ProductionStage.COMPLETED)

    ledger.apply_transaction(product.id, TransactionType.OUT, 9)

    product.refresh_from_db()
    assert product.current_stock == 0
    _assert_ledger_consistent(ledger, product)
