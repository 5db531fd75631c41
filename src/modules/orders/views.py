"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import ConflictError, StoreFailure, error_response
from modules.core.repositories.utils import parse_uuid
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import (
    EmptySelection,
    InvalidStage,
    ItemsNotFound,
    OrderItemNotFound,
    OrderLocked,
    OrderNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order, OrderItem
from modules.orders.serializers import (
    BulkTransitionSerializer,
    CreateOrderSerializer,
    OrderItemDetailSerializer,
    OrderItemSerializer,
    OrderListSerializer,
    OrderSerializer,
    TransitionStageSerializer,
    UpdateItemNoteSerializer,
)
from modules.orders.services import build_order_service
from modules.products.exceptions import ProductsNotFound
from modules.stock.exceptions import InsufficientStock


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all writes go through the
    service/repository layer.
    """

    queryset = Order.objects.prefetch_related("items__product")
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer_name"]
    ordering_fields = ["created_at", "completed_at", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        dto = CreateOrderDTO(
            customer_name=data.get("customer_name", ""),
            items=[
                CreateOrderItemDTO(
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    note=item.get("note", ""),
                )
                for item in data["items"]
            ],
        )

        try:
            order = self._service.create_order(dto, user_id=request.user.pk)
        except ProductsNotFound as exc:
            return error_response(exc, status.HTTP_404_NOT_FOUND, attr="items")

        out = OrderSerializer(order)
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, order number, date range) is handled by
        ``OrderFilter``.  Ordering is handled by ``OrderingFilter``.
        Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk)
        except OrderNotFound as exc:
            return error_response(exc, status.HTTP_404_NOT_FOUND)
        serializer = OrderSerializer(order)
        return Response(serializer.data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/"""
        try:
            order = self._service.cancel_order(pk)
        except OrderNotFound as exc:
            return error_response(exc, status.HTTP_404_NOT_FOUND)
        except OrderLocked as exc:
            return error_response(exc, status.HTTP_409_CONFLICT, attr="status")

        serializer = OrderSerializer(order)
        return Response(serializer.data)


class OrderItemViewSet(GenericViewSet):
    """Line-item endpoints: note editing and production stage changes."""

    queryset = OrderItem.objects.select_related("product").prefetch_related(
        "stage_history"
    )
    serializer_class = OrderItemSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/order-items/{pk}/"""
        item = None
        if parse_uuid(pk) is not None:
            item = self.get_queryset().filter(pk=pk).first()
        if item is None:
            return error_response(
                OrderItemNotFound(f"Order item {pk} not found."),
                status.HTTP_404_NOT_FOUND,
            )
        return Response(OrderItemDetailSerializer(item).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/order-items/{pk}/

        Only the note is editable here; stages move through ``/stage/``.
        """
        serializer = UpdateItemNoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            item = self._service.update_item_note(pk, serializer.validated_data["note"])
        except OrderItemNotFound as exc:
            return error_response(exc, status.HTTP_404_NOT_FOUND)

        return Response(OrderItemSerializer(item).data)

    @action(detail=True, methods=["patch"])
    def stage(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/order-items/{pk}/stage/"""
        serializer = TransitionStageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            item = self._service.transition_stage(
                pk, serializer.validated_data["stage"], user_id=request.user.pk
            )
        except OrderItemNotFound as exc:
            return error_response(exc, status.HTTP_404_NOT_FOUND)
        except InvalidStage as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST, attr="stage")
        except OrderLocked as exc:
            return error_response(exc, status.HTTP_409_CONFLICT, attr="stage")
        except (InsufficientStock, ConflictError) as exc:
            return error_response(exc, status.HTTP_409_CONFLICT)
        except StoreFailure as exc:
            return error_response(exc, status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(OrderItemSerializer(item).data)

    @action(detail=False, methods=["post"], url_path="bulk-stage")
    def bulk_stage(self, request: Request) -> Response:
        """POST /api/v1/order-items/bulk-stage/"""
        serializer = BulkTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self._service.bulk_transition_stage(
                data["item_ids"], data["stage"], user_id=request.user.pk
            )
        except ItemsNotFound as exc:
            return error_response(exc, status.HTTP_404_NOT_FOUND, attr="item_ids")
        except EmptySelection as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST, attr="item_ids")
        except InvalidStage as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST, attr="stage")
        except OrderLocked as exc:
            return error_response(exc, status.HTTP_409_CONFLICT, attr="stage")
        except (InsufficientStock, ConflictError) as exc:
            return error_response(exc, status.HTTP_409_CONFLICT)
        except StoreFailure as exc:
            return error_response(exc, status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(
            {
                "updated": result.updated_count,
                "items": OrderItemSerializer(result.items, many=True).data,
            }
        )
