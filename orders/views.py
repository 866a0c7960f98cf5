"""Orders API endpoints.

Order listing, detail, cancellation, status updates and the seller-facing
view. Role and ownership checks live in `orders.access`.
"""

from common.api import error_payload, error_response
from common.choices import OrderStatus
from common.errors import CommerceError
from django.http import Http404
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import generics
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .access import ensure_can_cancel, ensure_can_manage, ensure_can_view, is_admin
from .filters import OrderFilterSet
from .lifecycle import cancel_order, transition_order
from .models import Order
from .serializers import OrderSerializer, OrderStatusSerializer, SellerOrderSerializer
from .services import run_idempotent

IDEMPOTENCY_PARAMETER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)


def _get_order(order_id) -> Order:
    try:
        return Order.objects.prefetch_related("items").get(pk=int(order_id))
    except (Order.DoesNotExist, ValueError):
        raise Http404("Not found.")


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class OrderListView(generics.ListAPIView):
    """List orders visible to the caller with basic filters.

    Customers see their own orders; admins see every order.

    Filters:
    - `status`: one of the OrderStatus values
    - `number`: exact match of order number
    - `start`: ISO date/time string; filters `created_at >= start`
    - `end`: ISO date/time string; filters `created_at <= end`
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = OrderFilterSet
    throttle_scope = "orders"

    def get_queryset(self):
        qs = Order.objects.order_by("-id").prefetch_related("items")
        if is_admin(self.request.user):
            return qs
        return qs.filter(user_id=self.request.user.id)

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="List the caller's orders with optional filters and pagination.",
        parameters=[
            OpenApiParameter(name="status", description="Order status filter", required=False, type=str),
            OpenApiParameter(name="number", description="Order number exact match", required=False, type=str),
            OpenApiParameter(name="start", description="Created at >= start (ISO)", required=False, type=str),
            OpenApiParameter(name="end", description="Created at <= end (ISO)", required=False, type=str),
            OpenApiParameter(name="page", description="Page number", required=False, type=int),
            OpenApiParameter(name="page_size", description="Items per page", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(APIView):
    """Retrieve a single order for its owner, an admin or a seller with items in it."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Get order detail",
        responses={200: OrderSerializer},
        examples=[
            OpenApiExample(
                "Order",
                value={
                    "id": 123,
                    "number": "ORD-000123",
                    "status": "placed",
                    "payment_method": "credit_card",
                    "payment_status": "completed",
                    "items": [
                        {
                            "id": 10,
                            "product": 55,
                            "product_name": "Salmon Kibble 5kg",
                            "quantity": 3,
                            "unit_price": "20.00",
                            "line_total": "60.00",
                        }
                    ],
                    "subtotal": "60.00",
                    "tax": "5.10",
                    "shipping": "0.00",
                    "discount": "0.00",
                    "total": "65.10",
                },
                response_only=True,
            )
        ],
    )
    def get(self, request, order_id: int):
        order = _get_order(order_id)
        try:
            ensure_can_view(request.user, order)
        except CommerceError as exc:
            return error_response(exc)
        return Response(OrderSerializer(order, context={"request": request}).data)


class OrderCancelView(APIView):
    """Cancel an order for its owner or an admin.

    Idempotent when `Idempotency-Key` is provided. Returns 409 on key reuse with different payload.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Cancel order",
        description=(
            "Cancels a placed or processing order, restores stock and refunds the payment. "
            "Idempotent when Idempotency-Key header is set."
        ),
        parameters=[IDEMPOTENCY_PARAMETER],
        responses={200: OrderSerializer},
        examples=[
            OpenApiExample("Cancelled", value={"id": 1, "status": "cancelled"}, response_only=True),
            OpenApiExample(
                "Already cancelled",
                value={
                    "detail": "Cannot change order status from cancelled to cancelled.",
                    "code": "invalid_transition",
                },
                response_only=True,
            ),
        ],
    )
    def post(self, request, order_id: int):
        order = _get_order(order_id)

        def _handler():
            try:
                ensure_can_cancel(request.user, order)
                updated = cancel_order(order)
            except CommerceError as exc:
                return error_payload(exc)
            return OrderSerializer(updated, context={"request": request}).data, 200

        body, code = run_idempotent(request, _handler)
        return Response(body, status=code)


class OrderStatusView(APIView):
    """Advance an order's status (admins, or sellers with items in the order).

    Cancelling through this endpoint follows the cancel rules: owner or admin only.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Update order status",
        description=(
            "Moves the order along placed -> processing -> shipped -> delivered, or cancels it. "
            "A tracking number may be recorded when shipping."
        ),
        request=OrderStatusSerializer,
        parameters=[IDEMPOTENCY_PARAMETER],
        responses={200: OrderSerializer},
        examples=[
            OpenApiExample("Ship", value={"status": "shipped", "tracking_number": "1Z999"}, request_only=True),
        ],
    )
    def post(self, request, order_id: int):
        order = _get_order(order_id)
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        target = serializer.validated_data["status"]

        def _handler():
            try:
                if target == OrderStatus.CANCELLED:
                    ensure_can_cancel(request.user, order)
                else:
                    ensure_can_manage(request.user, order)
                updated = transition_order(
                    order, target, tracking_number=serializer.validated_data.get("tracking_number") or None
                )
            except CommerceError as exc:
                return error_payload(exc)
            return OrderSerializer(updated, context={"request": request}).data, 200

        body, code = run_idempotent(request, _handler)
        return Response(body, status=code)


class SellerOrderListView(generics.ListAPIView):
    """Orders containing the caller's products, limited to the caller's items."""

    permission_classes = [IsAuthenticated]
    serializer_class = SellerOrderSerializer
    pagination_class = DefaultPagination
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = OrderFilterSet
    throttle_scope = "orders"

    def get_queryset(self):
        return (
            Order.objects.filter(items__seller_id=self.request.user.id)
            .distinct()
            .order_by("-id")
            .prefetch_related("items")
        )

    @extend_schema(
        tags=["Orders"],
        summary="List seller orders",
        description="Orders that include the authenticated seller's products, with the seller's share.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
