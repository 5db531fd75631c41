"""Domain error taxonomy and the project-wide DRF exception handler.

Every module raises subclasses of the categories below.  Views translate
them into HTTP responses; anything reaching DRF unhandled is rendered by
``standardized_exception_handler`` in the same envelope::

    {"type": "client_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

import structlog
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for business-rule failures raised by the service layer."""

    code = "domain_error"
    http_status = 400


class NotFound(DomainError):
    """One or more referenced entities do not exist."""

    code = "not_found"
    http_status = 404


class DomainValidationError(DomainError):
    """The request is well-formed but violates a business rule."""

    code = "invalid"


class ConflictError(DomainError):
    """Concurrent writers could not be serialized; safe to retry as-is."""

    code = "conflict"
    http_status = 409
    retryable = True


class StoreFailure(DomainError):
    """The store failed to apply or commit the unit of work.

    The transaction has been rolled back; nothing was applied.
    """

    code = "store_failure"
    http_status = 503
    retryable = True


class MissingIdsMixin:
    """Carries the list of identifiers that failed to resolve."""

    missing_ids: List[str]

    def __init__(self, missing_ids: Iterable[Any], message: Optional[str] = None):
        self.missing_ids = sorted(str(i) for i in missing_ids)
        super().__init__(message or f"Not found: {', '.join(self.missing_ids)}.")


# ---------------------------------------------------------------------------
# DRF integration
# ---------------------------------------------------------------------------


def error_response(
    exc: DomainError, http_status: int, *, attr: Optional[str] = None
) -> Response:
    """Render a domain error in the standard envelope."""
    error: dict[str, Any] = {"code": exc.code, "detail": str(exc), "attr": attr}
    missing = getattr(exc, "missing_ids", None)
    if missing is not None:
        error["missing_ids"] = missing
    body: dict[str, Any] = {
        "type": "server_error" if http_status >= 500 else "client_error",
        "errors": [error],
    }
    if getattr(exc, "retryable", False):
        body["retryable"] = True
    return Response(body, status=http_status)


def _flatten(detail: Any, attr: Optional[str] = None) -> list[dict[str, Any]]:
    if isinstance(detail, dict):
        errors: list[dict[str, Any]] = []
        for key, value in detail.items():
            name = key if attr is None else f"{attr}.{key}"
            errors.extend(_flatten(value, None if key == "non_field_errors" else name))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, item in enumerate(detail):
            if not isinstance(item, (dict, list)):
                nested = attr
            else:
                nested = str(index) if attr is None else f"{attr}.{index}"
            errors.extend(_flatten(item, nested))
        return errors
    code = getattr(detail, "code", "error")
    return [{"code": code, "detail": str(detail), "attr": attr}]


def standardized_exception_handler(exc: Exception, context: dict) -> Optional[Response]:
    """DRF ``EXCEPTION_HANDLER`` producing the standard error envelope."""
    if isinstance(exc, DomainError):
        return error_response(exc, exc.http_status)

    response = exception_handler(exc, context)
    if response is None:
        logger.error("api.unhandled_exception", error=repr(exc))
        return None

    error_type = (
        "validation_error"
        if isinstance(exc, drf_exceptions.ValidationError)
        else "client_error"
    )
    detail = getattr(exc, "detail", response.data)
    response.data = {"type": error_type, "errors": _flatten(detail)}
    return response
