import django_filters

from modules.stock.models import StockTransaction


class StockTransactionFilter(django_filters.FilterSet):
    product = django_filters.UUIDFilter(field_name="product_id")
    type = django_filters.CharFilter(field_name="type", lookup_expr="iexact")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = StockTransaction
        fields = ["product", "type", "start_date", "end_date"]
