import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.orders.constants import ProductionStage
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.models import Order, OrderItem
from modules.orders.services import build_order_service
from modules.products.models import Product
from modules.stock.constants import TransactionType
from modules.stock.services import build_stock_ledger_service


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def user():
    return get_user_model().objects.create_user(
        username="workshop", password="testpass123"
    )


@pytest.fixture()
def auth_client(api_client, user):
    """APIClient authenticated as ``user``."""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture()
def make_product():
    """Factory: a product whose opening stock is booked through the ledger."""
    counter = {"n": 0}

    def _make(stock: int = 0, sku: str | None = None, name: str = "Gold ring") -> Product:
        counter["n"] += 1
        product = Product.objects.create(sku=sku or f"RING-{counter['n']:03d}", name=name)
        if stock:
            build_stock_ledger_service().apply_transaction(
                product.id, TransactionType.IN, stock, reason="opening stock"
            )
            product.refresh_from_db()
        return product

    return _make


@pytest.fixture()
def make_order():
    """Factory: an order via ``OrderService`` with items at given stages.

    ``lines`` is a list of ``(product, quantity)`` or
    ``(product, quantity, stage)`` tuples.  Stages other than TO_PRODUCE
    are written straight to the row, bypassing the workflow, so the
    order stays NEW unless the test moves it.
    """

    def _make(lines, customer_name: str = "Workshop client") -> Order:
        order = build_order_service().create_order(
            CreateOrderDTO(
                customer_name=customer_name,
                items=[
                    CreateOrderItemDTO(product_id=line[0].id, quantity=line[1])
                    for line in lines
                ],
            )
        )
        items = list(order.items.order_by("id"))
        for item, line in zip(items, lines):
            if len(line) > 2 and line[2] != ProductionStage.TO_PRODUCE:
                OrderItem.objects.filter(pk=item.pk).update(status=line[2])
        order.refresh_from_db()
        return order

    return _make
