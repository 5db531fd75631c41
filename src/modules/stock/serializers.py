"""Stock DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.stock.constants import TransactionType
from modules.stock.models import StockTransaction


class RecordStockTransactionSerializer(serializers.Serializer):
    """Validates a manual stock movement request."""

    product_id = serializers.UUIDField()
    type = serializers.ChoiceField(choices=TransactionType.choices)
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=255
    )


class StockTransactionSerializer(serializers.ModelSerializer):
    """Read serializer for ledger rows."""

    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = StockTransaction
        fields = [
            "id",
            "product_id",
            "product_sku",
            "type",
            "quantity",
            "reason",
            "user_id",
            "created_at",
        ]
        read_only_fields = fields


class LedgerAuditSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    sku = serializers.CharField()
    current_stock = serializers.IntegerField()
    ledger_balance = serializers.IntegerField()
    transaction_count = serializers.IntegerField()
    consistent = serializers.BooleanField()
