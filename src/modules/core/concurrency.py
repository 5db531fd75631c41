"""Retry helpers for units of work that may lose a race to another writer.

Deadlocks, lock timeouts and serialization failures surface from the
driver as ``OperationalError``.  The whole unit of work is rolled back by
``transaction.atomic`` before it reaches us, so re-running it is safe.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

import structlog
from django.conf import settings
from django.db import DatabaseError, OperationalError, transaction

from modules.core.exceptions import ConflictError, StoreFailure

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def in_atomic_block() -> bool:
    """Whether the default connection is inside ``transaction.atomic``."""
    return transaction.get_connection().in_atomic_block


def run_with_retry(
    func: Callable[[], T],
    *,
    attempts: int | None = None,
    backoff_base: float | None = None,
    operation: str = "unit_of_work",
) -> T:
    """Execute *func* with retry on concurrency-related failures.

    Retries on ``OperationalError``.  After the last attempt the failure is
    surfaced as ``ConflictError`` (retryable by the caller).  Any other
    ``DatabaseError`` becomes ``StoreFailure`` without retrying.  Domain
    errors propagate untouched.

    Retrying is skipped when called inside an outer transaction: the
    failed statement has already poisoned it, so only the outermost
    caller may re-run the work.
    """
    if attempts is None:
        attempts = settings.WORKFLOW_RETRY_ATTEMPTS
    if backoff_base is None:
        backoff_base = settings.WORKFLOW_RETRY_BACKOFF
    if in_atomic_block():
        attempts = 1

    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            logger.warning(
                "concurrency.retry",
                operation=operation,
                attempt=attempt + 1,
                attempts=attempts,
                error=str(exc),
            )
            if attempt >= attempts - 1:
                raise ConflictError(
                    f"{operation} could not be serialized after {attempts} attempts."
                ) from exc
            time.sleep(backoff_base * (2**attempt))
        except DatabaseError as exc:
            logger.error("concurrency.store_failure", operation=operation, error=str(exc))
            raise StoreFailure(f"{operation} failed to commit: {exc}") from exc
    raise ConflictError(f"{operation} was not attempted.")
