import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from modules.products.models import Product

pytestmark = pytest.mark.unit


class TestProduct:
    def test_sku_is_normalised_to_upper_case(self):
        product = Product.objects.create(sku="  ring-gold-52 ", name="Gold ring")
        assert product.sku == "RING-GOLD-52"
        assert product.current_stock == 0

    def test_sku_is_unique(self):
        Product.objects.create(sku="CHAIN-01", name="Chain")
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Product.objects.create(sku="chain-01", name="Other chain")

    def test_sku_cannot_change(self):
        product = Product.objects.create(sku="PEND-01", name="Pendant")
        product.sku = "PEND-02"
        with pytest.raises(ValidationError):
            product.save()

    def test_other_fields_can_change(self):
        product = Product.objects.create(sku="PEND-03", name="Pendant")
        product.name = "Silver pendant"
        product.save()
        product.refresh_from_db()
        assert product.name == "Silver pendant"

    def test_clean_rejects_negative_stock(self):
        product = Product(sku="EAR-01", name="Earring", current_stock=-1)
        with pytest.raises(ValidationError):
            product.clean()

    def test_database_rejects_negative_stock(self):
        product = Product.objects.create(sku="EAR-02", name="Earring")
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Product.objects.filter(pk=product.pk).update(current_stock=-1)
