from django.apps import AppConfig


class StockConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.stock"
    label = "stock"

    def ready(self) -> None:
        from modules.stock.events import StockTransactionRecorded
        from modules.stock.handlers import low_stock_check_handler
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(StockTransactionRecorded, low_stock_check_handler)
