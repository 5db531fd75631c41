"""Asynchronous stock tasks.

Both tasks are best-effort: every failure is logged and swallowed so a
broken notifier can never surface as an error anywhere in the workflow.
"""

from __future__ import annotations

import structlog
from celery import shared_task
from django.conf import settings

from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.stock.dtos import LowStockAlertDTO
from modules.stock.notifications import get_low_stock_notifier

logger = structlog.get_logger(__name__)


@shared_task(name="stock.check_low_stock")
def check_low_stock(product_id: str) -> dict:
    """Notify when a product sits at or below ``LOW_STOCK_THRESHOLD``."""
    log = logger.bind(product_id=product_id)
    try:
        product = ProductDjangoRepository().get_by_id(product_id)
        if product is None:
            log.info("stock.low_stock_check_skipped", reason="product_missing")
            return {"status": "missing"}

        threshold = settings.LOW_STOCK_THRESHOLD
        if product.current_stock > threshold:
            return {"status": "ok"}

        sent = get_low_stock_notifier().notify(
            LowStockAlertDTO.from_product(product, threshold)
        )
        log.info("stock.low_stock_checked", notified=sent)
        return {"status": "notified" if sent else "skipped"}
    except Exception:
        log.exception("stock.low_stock_check_failed")
        return {"status": "failed"}


@shared_task(name="stock.check_all_low_stock")
def check_all_low_stock() -> int:
    """Sweep every low-stock product; returns how many alerts were sent."""
    threshold = settings.LOW_STOCK_THRESHOLD
    sent = 0
    try:
        notifier = get_low_stock_notifier()
        for product in ProductDjangoRepository().low_stock(threshold):
            try:
                if notifier.notify(LowStockAlertDTO.from_product(product, threshold)):
                    sent += 1
            except Exception:
                logger.exception(
                    "stock.low_stock_notify_failed", product_id=str(product.id)
                )
    except Exception:
        logger.exception("stock.low_stock_sweep_failed")
    logger.info("stock.low_stock_sweep_completed", sent=sent, threshold=threshold)
    return sent
