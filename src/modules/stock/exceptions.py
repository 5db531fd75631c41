"""Stock ledger exceptions.

Raised by ``StockLedgerService`` before any write; the transaction that
raised them leaves ``current_stock`` and the ledger untouched.
"""

from __future__ import annotations

from modules.core.exceptions import DomainError, DomainValidationError


class InsufficientStock(DomainError):
    """An OUT transaction would drive ``current_stock`` below zero."""

    code = "insufficient_stock"
    http_status = 409

    def __init__(self, sku: str, requested: int, available: int) -> None:
        self.sku = sku
        self.requested = requested
        self.available = available
        super().__init__(
            f"Product {sku}: requested {requested}, available {available}."
        )


class InvalidQuantity(DomainValidationError):
    """Transaction quantity is not a positive integer."""

    code = "invalid_quantity"


class InvalidTransactionType(DomainValidationError):
    """Transaction type is neither IN nor OUT."""

    code = "invalid_transaction_type"
