"""Stock ledger repositories package."""

from modules.stock.repositories.django_repository import StockTransactionDjangoRepository
from modules.stock.repositories.interfaces import IStockTransactionRepository

__all__ = ["IStockTransactionRepository", "StockTransactionDjangoRepository"]
