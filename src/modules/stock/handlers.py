"""Event handlers for stock ledger events."""

from __future__ import annotations

import structlog
from django.conf import settings

from modules.stock.events import StockTransactionRecorded
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class LowStockCheckHandler(IEventHandler[StockTransactionRecorded]):
    """Queues a low-stock check when a committed movement lands under the threshold."""

    def handle(self, event: StockTransactionRecorded) -> None:
        if event.current_stock > settings.LOW_STOCK_THRESHOLD:
            return
        from modules.stock.tasks import check_low_stock

        check_low_stock.delay(str(event.aggregate_id))
        logger.info(
            "stock.low_stock_check_queued",
            product_id=str(event.aggregate_id),
            current_stock=event.current_stock,
        )


low_stock_check_handler = LowStockCheckHandler()
