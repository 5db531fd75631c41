"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``BulkTransitionResult``: output of a batch stage change.
"""

from __future__ import annotations

from typing import Any, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item in a creation request."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    note: str = ""

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates that ``items`` contains at least one item.  The same product
    may appear on several lines (different notes, e.g. ring sizes).
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str = ""
    items: List[CreateOrderItemDTO]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class BulkTransitionResult(BaseModel):
    """Outcome of a bulk transition: count plus the refreshed items."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    updated_count: int
    items: List[Any]
