"""Stock ledger service (the single writer of ``Product.current_stock``).

Business rules enforced:
- Quantities are positive integers; the type is IN or OUT.
- An OUT may not drive ``current_stock`` below zero.  The check runs
  against the row-locked product, so concurrent withdrawals serialize.
- The ledger row and the cached stock update are written in one atomic
  unit.  When called from inside a workflow transaction (order
  completion) they join that transaction.
- Low-stock notification is dispatched only after commit and can never
  roll the movement back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.concurrency import run_with_retry
from modules.products.exceptions import ProductNotFound
from modules.stock.constants import LEDGER_SIGN, TransactionType
from modules.stock.dtos import LedgerAuditDTO
from modules.stock.events import StockTransactionRecorded
from modules.stock.exceptions import (
    InsufficientStock,
    InvalidQuantity,
    InvalidTransactionType,
)
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.products.repositories.interfaces import IProductRepository
    from modules.stock.dtos import RecordStockTransactionDTO
    from modules.stock.models import StockTransaction
    from modules.stock.repositories.interfaces import IStockTransactionRepository

logger = structlog.get_logger(__name__)


class StockLedgerService:
    """Application service for stock movements.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        product_repository: IProductRepository,
        transaction_repository: IStockTransactionRepository,
    ) -> None:
        self._product_repo = product_repository
        self._tx_repo = transaction_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def apply_transaction(
        self,
        product_id: UUID | str,
        type: str,
        quantity: Any,
        reason: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> StockTransaction:
        """Append a ledger row and move ``current_stock`` by the same amount.

        Raises:
            InvalidTransactionType: *type* is not IN or OUT.
            InvalidQuantity: *quantity* is not a positive integer.
            ProductNotFound: the product does not exist.
            InsufficientStock: an OUT exceeds the available stock.
        """
        tx_type = self._validate_type(type)
        qty = self._validate_quantity(quantity)

        product = self._product_repo.get_for_update(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")

        log = logger.bind(
            product_id=str(product.id),
            sku=product.sku,
            type=tx_type,
            quantity=qty,
        )

        new_stock = product.current_stock + LEDGER_SIGN[tx_type] * qty
        if new_stock < 0:
            log.warning("stock.insufficient", available=product.current_stock)
            raise InsufficientStock(product.sku, qty, product.current_stock)

        entry = self._tx_repo.add(
            product_id=product.id,
            type=tx_type,
            quantity=qty,
            reason=reason,
            user_id=user_id,
        )
        self._product_repo.set_current_stock(product, new_stock)

        log.info(
            "stock.transaction_recorded",
            transaction_id=str(entry.id),
            current_stock=new_stock,
        )
        event_bus.publish_on_commit(
            StockTransactionRecorded(
                aggregate_id=product.id,
                transaction_id=entry.id,
                type=tx_type,
                quantity=qty,
                current_stock=new_stock,
            )
        )
        return entry

    def record_stock_transaction(
        self, dto: RecordStockTransactionDTO, user_id: Optional[int] = None
    ) -> StockTransaction:
        """Caller-facing entry point: one movement, retried on lock conflicts."""
        return run_with_retry(
            lambda: self.apply_transaction(
                dto.product_id,
                dto.type,
                dto.quantity,
                reason=dto.reason,
                user_id=user_id,
            ),
            operation="stock.record_transaction",
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def ledger_balance(self, product_id: UUID | str) -> int:
        """Signed sum of the product's ledger (IN positive, OUT negative)."""
        balance, _ = self._tx_repo.balance(product_id)
        return balance

    def verify_ledger(self, product_id: UUID | str) -> LedgerAuditDTO:
        """Compare the cached stock with the balance recomputed from the ledger.

        Raises:
            ProductNotFound: the product does not exist.
        """
        product = self._product_repo.get_by_id(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")

        balance, rows = self._tx_repo.balance(product.id)
        audit = LedgerAuditDTO(
            product_id=product.id,
            sku=product.sku,
            current_stock=product.current_stock,
            ledger_balance=balance,
            transaction_count=rows,
        )
        if not audit.consistent:
            logger.error(
                "stock.ledger_mismatch",
                product_id=str(product.id),
                current_stock=audit.current_stock,
                ledger_balance=audit.ledger_balance,
            )
        return audit

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_type(value: str) -> str:
        if value not in TransactionType.values:
            raise InvalidTransactionType(
                f"Transaction type must be one of {TransactionType.values}, got {value!r}."
            )
        return TransactionType(value).value

    @staticmethod
    def _validate_quantity(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidQuantity(f"Quantity must be a positive integer, got {value!r}.")
        return value


def build_stock_ledger_service() -> StockLedgerService:
    """Wire the service with its Django ORM repositories."""
    from modules.products.repositories.django_repository import (
        ProductDjangoRepository,
    )
    from modules.stock.repositories.django_repository import (
        StockTransactionDjangoRepository,
    )

    return StockLedgerService(
        product_repository=ProductDjangoRepository(),
        transaction_repository=StockTransactionDjangoRepository(),
    )
