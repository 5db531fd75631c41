"""Stock URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.stock.views import StockTransactionViewSet

router = DefaultRouter(trailing_slash=True)
router.register("stock/transactions", StockTransactionViewSet, basename="stock-transaction")

urlpatterns = router.urls
