from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.dtos import BulkTransitionResult, CreateOrderDTO, CreateOrderItemDTO

pytestmark = pytest.mark.unit


class TestCreateOrderDTO:
    def test_valid(self):
        dto = CreateOrderDTO(
            customer_name="Client",
            items=[CreateOrderItemDTO(product_id=uuid4(), quantity=2)],
        )
        assert dto.items[0].quantity == 2
        assert dto.items[0].note == ""

    def test_requires_at_least_one_item(self):
        with pytest.raises(ValidationError, match="at least one item"):
            CreateOrderDTO(items=[])

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_rejects_non_positive_quantity(self, quantity):
        with pytest.raises(ValidationError):
            CreateOrderItemDTO(product_id=uuid4(), quantity=quantity)

    def test_same_product_on_several_lines_is_allowed(self):
        product_id = uuid4()
        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(product_id=product_id, quantity=1, note="size 52"),
                CreateOrderItemDTO(product_id=product_id, quantity=1, note="size 56"),
            ]
        )
        assert len(dto.items) == 2

    def test_is_immutable(self):
        dto = CreateOrderDTO(items=[CreateOrderItemDTO(product_id=uuid4(), quantity=1)])
        with pytest.raises(ValidationError):
            dto.customer_name = "changed"


class TestBulkTransitionResult:
    def test_is_immutable(self):
        result = BulkTransitionResult(updated_count=2, items=["x", "y"])
        with pytest.raises(ValidationError):
            result.updated_count = 3
