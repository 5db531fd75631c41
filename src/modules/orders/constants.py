"""Production order constants.

``PRODUCTION_STAGES`` is the single source of truth for stage ordering.
Everything that needs "next" or "previous" stage (kanban boards, reports)
goes through the helpers below instead of re-deriving the order.
"""

from __future__ import annotations

from typing import Optional

from django.db import models


class ProductionStage(models.TextChoices):
    TO_PRODUCE = "TO_PRODUCE", "To produce"
    WAX_PRESSING = "WAX_PRESSING", "Wax pressing"
    WAX_READY = "WAX_READY", "Wax ready"
    CASTING = "CASTING", "Casting"
    BENCH = "BENCH", "Bench work"
    POLISHING = "POLISHING", "Polishing"
    PACKAGING = "PACKAGING", "Packaging"
    COMPLETED = "COMPLETED", "Completed"


class OrderStatus(models.TextChoices):
    NEW = "NEW", "New"
    IN_PRODUCTION = "IN_PRODUCTION", "In production"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


PRODUCTION_STAGES: tuple[str, ...] = (
    ProductionStage.TO_PRODUCE,
    ProductionStage.WAX_PRESSING,
    ProductionStage.WAX_READY,
    ProductionStage.CASTING,
    ProductionStage.BENCH,
    ProductionStage.POLISHING,
    ProductionStage.PACKAGING,
    ProductionStage.COMPLETED,
)

INITIAL_STAGE = ProductionStage.TO_PRODUCE
TERMINAL_STAGE = ProductionStage.COMPLETED

# Orders in these statuses no longer accept stage changes.
LOCKED_STATUSES: frozenset[str] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

ORDER_NUMBER_PREFIX = "PRD"
ORDER_NUMBER_MAX_RETRIES = 5


def stage_index(stage: str) -> int:
    """Position of *stage* in the production sequence."""
    return PRODUCTION_STAGES.index(stage)


def next_stage(stage: str) -> Optional[str]:
    """Stage after *stage*, or ``None`` at the terminal stage."""
    index = stage_index(stage)
    if index + 1 >= len(PRODUCTION_STAGES):
        return None
    return PRODUCTION_STAGES[index + 1]


def previous_stage(stage: str) -> Optional[str]:
    """Stage before *stage*, or ``None`` at the initial stage."""
    index = stage_index(stage)
    if index == 0:
        return None
    return PRODUCTION_STAGES[index - 1]
