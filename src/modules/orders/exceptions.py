"""Order domain exceptions.

Raised by the workflow components and ``OrderService`` when business
rules are violated.  The API layer (Views) catches these and translates
them into appropriate HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import DomainValidationError, MissingIdsMixin, NotFound


class OrderNotFound(NotFound):
    """The requested order does not exist."""


class OrderItemNotFound(NotFound):
    """The requested order item does not exist."""


class ItemsNotFound(MissingIdsMixin, NotFound):
    """Some ids of a bulk selection do not resolve to order items.

    The whole batch is rejected; ``missing_ids`` lists the culprits.
    """


class InvalidStage(DomainValidationError):
    """The target stage is not a member of the production sequence."""

    code = "invalid_stage"


class EmptySelection(DomainValidationError):
    """A bulk transition was requested without any item ids."""

    code = "empty_selection"


class OrderLocked(DomainValidationError):
    """The owning order is COMPLETED or CANCELLED and refuses the change."""

    code = "order_locked"
    http_status = 409
