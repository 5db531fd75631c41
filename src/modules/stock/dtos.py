"""Stock DTOs for the Service Layer.

Framework-agnostic, immutable (``frozen=True``) Pydantic v2 models that
travel between the API layer and ``StockLedgerService``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.stock.constants import TransactionType

if TYPE_CHECKING:
    from modules.products.models import Product


class RecordStockTransactionDTO(BaseModel):
    """Input for a manual stock movement (receiving, sale, correction)."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    type: TransactionType
    quantity: int
    reason: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("reason")
    @classmethod
    def blank_reason_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class LedgerAuditDTO(BaseModel):
    """Result of recomputing a product's balance from its ledger."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    sku: str
    current_stock: int
    ledger_balance: int
    transaction_count: int

    @property
    def consistent(self) -> bool:
        return self.current_stock == self.ledger_balance


class LowStockAlertDTO(BaseModel):
    """Payload handed to the low-stock notifier."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    sku: str
    name: str
    current_stock: int
    threshold: int

    @property
    def out_of_stock(self) -> bool:
        return self.current_stock == 0

    @classmethod
    def from_product(cls, product: Product, threshold: int) -> LowStockAlertDTO:
        return cls(
            product_id=product.id,
            sku=product.sku,
            name=product.name,
            current_stock=product.current_stock,
            threshold=threshold,
        )
