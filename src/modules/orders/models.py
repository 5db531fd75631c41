"""Production order models: Order, OrderItem and ProductionStageHistory.

Business rules implemented:
- Order number auto-generated as a human-readable identifier.
- ``Order.status`` is derived from its items by the workflow services:
  NEW until any item leaves TO_PRODUCE, then IN_PRODUCTION, then
  COMPLETED exactly when the last item reaches the terminal stage.
- ``completed_at`` is written once, on the transition to COMPLETED.
- OrderItem ``quantity`` is fixed at creation; ``note`` is free text
  that never affects the workflow.
- ProductionStageHistory is append-only: one row per transition request,
  including requests that leave the stage unchanged.
- Products referenced by items use PROTECT so the catalog cannot delete
  a product that production history points at.
"""

from __future__ import annotations

import secrets
from typing import Any

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import AppendOnlyModel, BaseModel
from modules.orders.constants import (
    INITIAL_STAGE,
    LOCKED_STATUSES,
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_PREFIX,
    TERMINAL_STAGE,
    OrderStatus,
    ProductionStage,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, BaseModel):
    """Production order aggregate root.

    ``order_number`` is generated on first save
    (format: ``PRD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for all
    internal references and API look-ups.
    """

    order_number: models.CharField = models.CharField(
        max_length=32, unique=True, editable=False
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.NEW,
    )
    customer_name: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="production_orders",
    )
    completed_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------

    @property
    def is_locked(self) -> bool:
        """``True`` once the order is COMPLETED or CANCELLED."""
        return self.status in LOCKED_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status == OrderStatus.COMPLETED

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``PRD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"{ORDER_NUMBER_PREFIX}-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item: a quantity of one product moving through the stages."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=ProductionStage.choices,
        default=INITIAL_STAGE,
    )
    note: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="order_items_order_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    @property
    def is_completed(self) -> bool:
        return self.status == TERMINAL_STAGE

    def __str__(self) -> str:
        return f"{self.product} x{self.quantity} [{self.status}]"


class ProductionStageHistory(AppendOnlyModel):
    """Append-only audit trail of stage transitions.

    ``user`` is nullable: ``None`` means the transition was performed by
    the system or by an unidentified actor.
    """

    order_item: models.ForeignKey = models.ForeignKey(
        "orders.OrderItem",
        on_delete=models.PROTECT,
        related_name="stage_history",
    )
    stage: models.CharField = models.CharField(
        max_length=20,
        choices=ProductionStage.choices,
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "production_stage_history"
        ordering = ["-created_at"]
        verbose_name_plural = "production stage history"
        indexes = [
            models.Index(
                fields=["order_item", "-created_at"],
                name="psh_item_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_item_id} -> {self.stage}"
