"""Stock API views.

Exposes ``StockLedgerService`` over HTTP.  Domain exceptions are caught
and translated into HTTP status codes here; everything else falls through
to the project exception handler.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import ConflictError, error_response
from modules.products.exceptions import ProductNotFound
from modules.stock.dtos import RecordStockTransactionDTO
from modules.stock.exceptions import InsufficientStock, InvalidQuantity
from modules.stock.filters import StockTransactionFilter
from modules.stock.models import StockTransaction
from modules.stock.serializers import (
    LedgerAuditSerializer,
    RecordStockTransactionSerializer,
    StockTransactionSerializer,
)
from modules.stock.services import build_stock_ledger_service


class StockTransactionViewSet(GenericViewSet):
    """Ledger endpoints.

    The ledger is append-only: there is no update or delete route.
    """

    queryset = StockTransaction.objects.select_related("product")
    serializer_class = StockTransactionSerializer
    filterset_class = StockTransactionFilter
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    ordering_fields = ["created_at", "quantity"]
    ordering = ["-created_at"]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_stock_ledger_service()

    def create(self, request: Request) -> Response:
        """POST /api/v1/stock/transactions/"""
        serializer = RecordStockTransactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dto = RecordStockTransactionDTO(
            product_id=data["product_id"],
            type=data["type"],
            quantity=data["quantity"],
            reason=data.get("reason"),
        )

        try:
            entry = self._service.record_stock_transaction(dto, user_id=request.user.pk)
        except ProductNotFound as exc:
            return error_response(exc, status.HTTP_404_NOT_FOUND, attr="product_id")
        except InvalidQuantity as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST, attr="quantity")
        except InsufficientStock as exc:
            return error_response(exc, status.HTTP_409_CONFLICT, attr="quantity")
        except ConflictError as exc:
            return error_response(exc, status.HTTP_409_CONFLICT)

        out = StockTransactionSerializer(entry)
        return Response(out.data, status=status.HTTP_201_CREATED)

    def list(self, request: Request) -> Response:
        """GET /api/v1/stock/transactions/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = StockTransactionSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"products/(?P<product_id>[^/.]+)/ledger",
    )
    def ledger(self, request: Request, product_id: str | None = None) -> Response:
        """GET /api/v1/stock/transactions/products/{product_id}/ledger/"""
        try:
            audit = self._service.verify_ledger(product_id)
        except ProductNotFound as exc:
            return error_response(exc, status.HTTP_404_NOT_FOUND)

        payload = {**audit.model_dump(), "consistent": audit.consistent}
        return Response(LedgerAuditSerializer(payload).data)
