"""Low-stock notification port.

The chat transport (Telegram in the dashboard) lives outside this engine.
It plugs in through ``settings.STOCK_LOW_NOTIFIER``: a dotted path to a
``LowStockNotifier`` subclass instantiated without arguments.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog
from django.conf import settings
from django.utils.html import escape
from django.utils.module_loading import import_string

from modules.stock.dtos import LowStockAlertDTO

logger = structlog.get_logger(__name__)


def format_low_stock_message(alert: LowStockAlertDTO) -> str:
    """Render the HTML alert body used by chat notifiers."""
    status = "Out of stock" if alert.out_of_stock else "Critical level"
    marker = "🔴" if alert.out_of_stock else "🟠"
    return (
        "⚠️ <b>Low Stock Alert</b>\n\n"
        f"<b>Product:</b> {escape(alert.name)}\n"
        f"<b>SKU:</b> <code>{escape(alert.sku)}</code>\n"
        f"<b>Current stock:</b> {alert.current_stock} pcs\n"
        f"<b>Status:</b> {marker} {status}"
    )


class LowStockNotifier(ABC):
    """Delivers a low-stock alert.  Returns ``True`` when something was sent."""

    @abstractmethod
    def notify(self, alert: LowStockAlertDTO) -> bool: ...


class LogLowStockNotifier(LowStockNotifier):
    """Default notifier: logs the rendered alert as a structured warning."""

    def notify(self, alert: LowStockAlertDTO) -> bool:
        logger.warning(
            "stock.low_stock_alert",
            product_id=str(alert.product_id),
            sku=alert.sku,
            current_stock=alert.current_stock,
            threshold=alert.threshold,
            out_of_stock=alert.out_of_stock,
            message=format_low_stock_message(alert),
        )
        return True


def get_low_stock_notifier() -> LowStockNotifier:
    notifier_class = import_string(settings.STOCK_LOW_NOTIFIER)
    return notifier_class()
