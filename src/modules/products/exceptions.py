"""Product domain exceptions.

Raised by the Service Layer when a referenced product cannot be
resolved.  The API layer (Views) translates them into 404 responses.
"""

from __future__ import annotations

from modules.core.exceptions import MissingIdsMixin, NotFound


class ProductNotFound(NotFound):
    """The requested product does not exist."""


class ProductsNotFound(MissingIdsMixin, NotFound):
    """Some of the products referenced by a request do not exist.

    ``missing_ids`` lists every identifier that failed to resolve.
    """
