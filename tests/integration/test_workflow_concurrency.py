"""Workflow concurrency integration tests.

Proves that order-row locking in the stage machine and product-row
locking in the stock ledger serialize concurrent writers:

- Several operators completing different items of the same order at
  the same time credit every item exactly once and complete the order
  exactly once.
- A bulk completion racing single completions of the same items still
  credits each item once.
- Concurrent withdrawals never drive stock negative and conserve units.

Uses ``TransactionTestCase`` so each thread sees committed data and the
database lock behaves as it does in production.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

import django
from django.test import TransactionTestCase

from modules.core.exceptions import ConflictError
from modules.orders.constants import OrderStatus, ProductionStage
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.models import OrderItem
from modules.orders.services import build_order_service
from modules.products.models import Product
from modules.stock.constants import TransactionType
from modules.stock.dtos import RecordStockTransactionDTO
from modules.stock.exceptions import InsufficientStock
from modules.stock.models import StockTransaction
from modules.stock.services import build_stock_ledger_service

logger = logging.getLogger(__name__)

INITIAL_STOCK = 5
NUM_WORKERS = 10
NUM_ITEMS = 6


def _run_in_thread(func, *args):
    """Run *func* on a fresh connection; close it before the thread exits."""
    django.db.connections.close_all()
    try:
        return func(*args)
    finally:
        django.db.connections.close_all()


def _run_concurrently(func, args_list):
    results = []
    with ThreadPoolExecutor(max_workers=len(args_list)) as pool:
        futures = [pool.submit(_run_in_thread, func, *args) for args in args_list]
        for future in as_completed(futures):
            results.append(future.result())
    return results


class TestConcurrentCompletion(TransactionTestCase):
    """Fan-in of concurrent completions credits stock exactly once per item."""

    def setUp(self):
        self.products = [
            Product.objects.create(sku=f"CONC-{i:02d}", name=f"Ring {i}")
            for i in range(NUM_ITEMS)
        ]
        self.order = build_order_service().create_order(
            CreateOrderDTO(
                items=[
                    CreateOrderItemDTO(product_id=product.id, quantity=i + 1)
                    for i, product in enumerate(self.products)
                ]
            )
        )
        OrderItem.objects.filter(order=self.order).update(status=ProductionStage.PACKAGING)
        self.item_ids = list(
            self.order.items.order_by("id").values_list("id", flat=True)
        )

    def _complete_item(self, item_id) -> str:
        try:
            build_order_service().transition_stage(item_id, ProductionStage.COMPLETED)
            return "success"
        except ConflictError:
            logger.warning("Item %s: conflict after retries", item_id)
            return "conflict"

    def _complete_batch(self, item_ids) -> str:
        try:
            build_order_service().bulk_transition_stage(item_ids, ProductionStage.COMPLETED)
            return "success"
        except ConflictError:
            logger.warning("Bulk completion: conflict after retries")
            return "conflict"

    def _assert_credited_once(self):
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.COMPLETED)
        self.assertIsNotNone(self.order.completed_at)

        credits = StockTransaction.objects.filter(
            type=TransactionType.IN,
            reason=f"order completed: {self.order.order_number}",
        )
        self.assertEqual(credits.count(), NUM_ITEMS)
        for i, product in enumerate(self.products):
            product.refresh_from_db()
            self.assertEqual(product.current_stock, i + 1)

    def test_items_completed_concurrently_credit_once(self):
        results = _run_concurrently(self._complete_item, [(i,) for i in self.item_ids])

        self.assertEqual(results.count("success"), NUM_ITEMS, results)
        self._assert_credited_once()

    def test_bulk_racing_single_completions_credits_once(self):
        args = [(i,) for i in self.item_ids]
        results = []
        with ThreadPoolExecutor(max_workers=NUM_ITEMS + 1) as pool:
            futures = [pool.submit(_run_in_thread, self._complete_item, *a) for a in args]
            futures.append(
                pool.submit(_run_in_thread, self._complete_batch, list(self.item_ids))
            )
            for future in as_completed(futures):
                results.append(future.result())

        self.assertNotIn("conflict", results)
        self._assert_credited_once()


class TestConcurrentWithdrawals(TransactionTestCase):
    """Concurrent OUT movements serialize on the product row."""

    def setUp(self):
        self.product = Product.objects.create(sku="CONC-OUT", name="Silver chain")
        build_stock_ledger_service().apply_transaction(
            self.product.id, TransactionType.IN, INITIAL_STOCK, reason="opening stock"
        )

    def _withdraw(self, thread_id: int) -> str:
        dto = RecordStockTransactionDTO(
            product_id=self.product.id,
            type=TransactionType.OUT,
            quantity=1,
            reason=f"sale {thread_id}",
        )
        try:
            build_stock_ledger_service().record_stock_transaction(dto)
            return "success"
        except InsufficientStock:
            return "insufficient"

    def test_concurrent_withdrawals_exhaust_stock(self):
        results = _run_concurrently(self._withdraw, [(i,) for i in range(NUM_WORKERS)])

        self.assertEqual(results.count("success"), INITIAL_STOCK)
        self.assertEqual(results.count("insufficient"), NUM_WORKERS - INITIAL_STOCK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 0)

    def test_stock_is_conserved(self):
        results = _run_concurrently(self._withdraw, [(i,) for i in range(NUM_WORKERS)])

        self.product.refresh_from_db()
        self.assertGreaterEqual(self.product.current_stock, 0)
        sold = results.count("success")
        self.assertEqual(INITIAL_STOCK, sold + self.product.current_stock)
        audit = build_stock_ledger_service().verify_ledger(self.product.id)
        self.assertTrue(audit.consistent)
        self.assertEqual(audit.transaction_count, 1 + sold)
