"""Product repository interface.

Extends ``IRepository[Product]`` with the look-ups the workflow needs:
batch existence checks and the locked stock read used by the stock
ledger.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Set

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def missing_ids(self, ids: Iterable[str]) -> Set[str]:
        """Return the subset of *ids* that match no product."""

    @abstractmethod
    def set_current_stock(self, product: Product, new_stock: int) -> Product:
        """Persist a new cached stock level for a locked product row."""

    @abstractmethod
    def low_stock(self, threshold: int) -> List[Product]:
        """Products whose cached stock is at or below *threshold*."""
