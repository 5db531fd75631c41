"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import ProductionStage
from modules.orders.models import Order, OrderItem, ProductionStageHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    note = serializers.CharField(required=False, default="", allow_blank=True)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    customer_name = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=255
    )
    items = CreateOrderItemSerializer(many=True, allow_empty=False)


class TransitionStageSerializer(serializers.Serializer):
    stage = serializers.ChoiceField(choices=ProductionStage.choices)


class BulkTransitionSerializer(serializers.Serializer):
    """Validates a bulk stage request.

    An empty ``item_ids`` list is accepted here and rejected by the
    workflow, which owns the empty-selection rule.
    """

    item_ids = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    stage = serializers.ChoiceField(choices=ProductionStage.choices)


class UpdateItemNoteSerializer(serializers.Serializer):
    note = serializers.CharField(allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class StageHistorySerializer(serializers.ModelSerializer):
    """Read serializer for stage history records."""

    class Meta:
        model = ProductionStageHistory
        fields = ["id", "stage", "user_id", "created_at"]
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with their product."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "order_id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "status",
            "note",
            "updated_at",
        ]
        read_only_fields = fields


class OrderItemDetailSerializer(OrderItemSerializer):
    """Order item including its stage history (newest first)."""

    stage_history = StageHistorySerializer(many=True, read_only=True)

    class Meta(OrderItemSerializer.Meta):
        fields = OrderItemSerializer.Meta.fields + ["stage_history"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemDetailSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "customer_name",
            "user_id",
            "created_at",
            "updated_at",
            "completed_at",
            "items",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (items without history)."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "customer_name",
            "created_at",
            "completed_at",
            "items",
        ]
        read_only_fields = fields
