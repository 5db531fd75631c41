"""Helpers shared by the Django repository implementations."""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID


def parse_uuid(value: Any) -> Optional[UUID]:
    """Coerce *value* to a UUID, or ``None`` when it is not one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None
