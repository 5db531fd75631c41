from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.orders.constants import ProductionStage
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.services import build_order_service
from modules.products.models import Product
from modules.stock.constants import TransactionType
from modules.stock.services import build_stock_ledger_service

SEED_PRODUCTS = [
    ("GLD-RNG-001", "Gold ring", 25),
    ("SLV-NCK-001", "Silver necklace", 15),
    ("GLD-EAR-001", "Gold earrings", 30),
    ("SLV-BRC-001", "Silver bracelet", 20),
    ("GLD-BRC-001", "Gold bracelet", 10),
    ("SLV-RNG-001", "Silver ring", 18),
    ("GLD-NCK-001", "Gold necklace", 12),
    ("SLV-EAR-001", "Silver earrings", 28),
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        self.stdout.write("Seeding development data...")

        users_created, operator = self._seed_users()
        products = self._seed_products(operator)
        orders_created = self._seed_orders(products, operator)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self):
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        for username in ("operation", "workshop"):
            if not User.objects.filter(username=username).exists():
                User.objects.create_user(username, password=f"{username}123")
                created += 1
        return created, User.objects.get(username="operation")

    def _seed_products(self, operator) -> list[Product]:
        """Create products and book their opening stock through the ledger."""
        self.stdout.write("Creating products...")
        ledger = build_stock_ledger_service()
        products: list[Product] = []
        for sku, name, opening_stock in SEED_PRODUCTS:
            product, created = Product.objects.get_or_create(
                sku=sku, defaults={"name": name}
            )
            if created:
                ledger.apply_transaction(
                    product.id,
                    TransactionType.IN,
                    opening_stock,
                    reason="opening stock",
                    user_id=operator.pk,
                )
            products.append(product)
        return products

    def _seed_orders(self, products: list[Product], operator) -> int:
        self.stdout.write("Creating orders...")
        service = build_order_service()

        fresh = service.create_order(
            CreateOrderDTO(
                customer_name="Sample customer 1",
                items=[
                    CreateOrderItemDTO(product_id=products[0].id, quantity=2),
                    CreateOrderItemDTO(product_id=products[1].id, quantity=1),
                ],
            ),
            user_id=operator.pk,
        )

        started = service.create_order(
            CreateOrderDTO(
                customer_name="Sample customer 2",
                items=[CreateOrderItemDTO(product_id=products[2].id, quantity=3)],
            ),
            user_id=operator.pk,
        )
        service.transition_stage(
            started.items.first().id, ProductionStage.WAX_PRESSING, user_id=operator.pk
        )

        finished = service.create_order(
            CreateOrderDTO(
                customer_name="Sample customer 3",
                items=[CreateOrderItemDTO(product_id=products[3].id, quantity=1)],
            ),
            user_id=operator.pk,
        )
        service.bulk_transition_stage(
            [item.id for item in finished.items.all()],
            ProductionStage.COMPLETED,
            user_id=operator.pk,
        )

        return len({fresh.id, started.id, finished.id})
