import pytest

from modules.core.models import ImmutableRecordError
from modules.orders.models import Order
from modules.stock.constants import TransactionType
from modules.stock.models import StockTransaction

pytestmark = pytest.mark.unit


class TestBaseModel:
    def test_uuid7_primary_keys_are_time_ordered(self):
        first = Order.objects.create()
        second = Order.objects.create()
        assert first.id.version == 7
        assert str(first.id) < str(second.id)

    def test_update_fields_refreshes_updated_at(self):
        order = Order.objects.create()
        before = order.updated_at

        order.customer_name = "Renamed"
        order.save(update_fields=["customer_name"])
        order.refresh_from_db()

        assert order.customer_name == "Renamed"
        assert order.updated_at >= before

    def test_empty_update_fields_writes_nothing(self, django_assert_num_queries):
        order = Order.objects.create(customer_name="Original")
        order.customer_name = "Unsaved"

        with django_assert_num_queries(0):
            order.save(update_fields=[])

        order.refresh_from_db()
        assert order.customer_name == "Original"


class TestAppendOnlyModel:
    def test_insert_is_allowed(self, make_product):
        product = make_product()
        row = StockTransaction.objects.create(
            product=product, type=TransactionType.IN, quantity=1
        )
        assert row.created_at is not None

    def test_existing_row_cannot_be_saved(self, make_product):
        row = StockTransaction.objects.create(
            product=make_product(), type=TransactionType.IN, quantity=1
        )
        row.quantity = 99
        with pytest.raises(ImmutableRecordError):
            row.save()

    def test_queryset_mutations_are_refused(self, make_product):
        product = make_product()
        StockTransaction.objects.create(product=product, type=TransactionType.IN, quantity=1)
        rows = StockTransaction.objects.filter(product=product)

        with pytest.raises(ImmutableRecordError):
            rows.update(quantity=2)
        with pytest.raises(ImmutableRecordError):
            rows.delete()
        assert rows.get().quantity == 1
