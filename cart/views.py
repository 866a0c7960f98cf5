"""DRF views for cart operations.

Every endpoint serves both shoppers: authenticated users get their account
cart, anonymous callers are identified by the `X-Session-Id` header.
"""

from common.api import MISSING_SESSION, SESSION_HEADER, error_payload, error_response, session_token
from common.errors import CommerceError
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from orders.checkout import checkout
from orders.serializers import CheckoutSerializer, OrderSerializer
from orders.services import run_idempotent
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .owners import CartOwner, owner_from_request
from .serializers import (
    AddItemSerializer,
    CartItemReadSerializer,
    CartReadSerializer,
    PromoCodeSerializer,
    UpdateItemQuantitySerializer,
)
from .services import (
    add_item,
    apply_promo,
    clear_cart,
    get_cart,
    get_count,
    merge_guest_cart,
    remove_item,
    update_item_quantity,
    validate_cart,
)

SESSION_PARAMETER = OpenApiParameter(
    name=SESSION_HEADER,
    location=OpenApiParameter.HEADER,
    required=False,
    description="Guest session identifier; required when not authenticated",
    type=str,
)

ERROR_RESPONSE = inline_serializer(
    name="CartError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)


class CartOwnerMixin:
    """Resolve the cart owner; `None` means the caller must be told to send a session id."""

    permission_classes = [AllowAny]

    def get_owner(self, request):
        return owner_from_request(request)

    def missing_owner(self):
        return Response(MISSING_SESSION, status=status.HTTP_400_BAD_REQUEST)


class CartDetailView(CartOwnerMixin, APIView):
    """Return the caller's cart."""

    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get cart",
        description="Returns the caller's cart including items and totals. Never creates a cart.",
        parameters=[SESSION_PARAMETER],
        responses={200: CartReadSerializer},
        examples=[
            OpenApiExample(
                "Cart",
                value={
                    "owner": "user:7",
                    "items": [
                        {
                            "id": "3f0c2b9a6d1e4f0f9a3b7c1d2e5f6a7b",
                            "product_id": 100,
                            "name": "Salmon Kibble 5kg",
                            "image": "",
                            "quantity": 3,
                            "unit_price": "20.00",
                            "line_total": "60.00",
                        }
                    ],
                    "count": 3,
                    "promo_code": "",
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
    def get(self, request):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        return Response(CartReadSerializer.from_state(cart=get_cart(owner=owner)).data, status=status.HTTP_200_OK)


class CartCountView(CartOwnerMixin, APIView):
    """Return the number of units in the caller's cart."""

    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get cart item count",
        parameters=[SESSION_PARAMETER],
        responses={200: inline_serializer(name="CartCount", fields={"count": rf_serializers.IntegerField()})},
        examples=[OpenApiExample("Count", value={"count": 3}, response_only=True)],
    )
    def get(self, request):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        return Response({"count": get_count(owner=owner)}, status=status.HTTP_200_OK)


class CartAddItemView(CartOwnerMixin, APIView):
    """Add a product to the cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        description=(
            "Adds a product to the cart or increments its line. Quantities above stock are "
            "clamped and reported through `adjusted`/`warning`."
        ),
        request=AddItemSerializer,
        parameters=[SESSION_PARAMETER],
        responses={
            201: inline_serializer(
                name="CartItemCreatedResponse",
                fields={
                    "id": rf_serializers.CharField(),
                    "quantity": rf_serializers.IntegerField(),
                    "adjusted": rf_serializers.BooleanField(),
                    "warning": rf_serializers.CharField(allow_null=True),
                },
            ),
            400: ERROR_RESPONSE,
            404: ERROR_RESPONSE,
            409: ERROR_RESPONSE,
        },
        examples=[
            OpenApiExample(
                "Clamped",
                value={
                    "id": "3f0c2b9a6d1e4f0f9a3b7c1d2e5f6a7b",
                    "quantity": 2,
                    "adjusted": True,
                    "warning": "Quantity adjusted to available stock",
                },
                response_only=True,
            )
        ],
    )
    def post(self, request):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = add_item(owner=owner, **serializer.validated_data)
        except CommerceError as exc:
            return error_response(exc)
        return Response(
            {
                "id": result.item.id,
                "quantity": result.item.quantity,
                "adjusted": result.adjusted,
                "warning": result.warning,
            },
            status=status.HTTP_201_CREATED,
        )


class CartItemView(CartOwnerMixin, APIView):
    """Update or remove a single cart line."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update cart item quantity",
        description="Sets the line quantity. Quantities above current stock are rejected.",
        request=UpdateItemQuantitySerializer,
        parameters=[SESSION_PARAMETER],
        responses={200: CartItemReadSerializer, 400: ERROR_RESPONSE, 404: ERROR_RESPONSE, 409: ERROR_RESPONSE},
    )
    def patch(self, request, item_id: str):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        serializer = UpdateItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            line = update_item_quantity(owner=owner, item_id=item_id, quantity=serializer.validated_data["quantity"])
        except CommerceError as exc:
            return error_response(exc)
        return Response(CartItemReadSerializer(line).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Delete cart item",
        description="Removes a cart line. Unknown ids are ignored.",
        parameters=[SESSION_PARAMETER],
        responses={204: None},
    )
    def delete(self, request, item_id: str):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        try:
            remove_item(owner=owner, item_id=item_id)
        except CommerceError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CartClearView(CartOwnerMixin, APIView):
    """Empty the cart and drop its promo code."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        parameters=[SESSION_PARAMETER],
        responses={200: CartReadSerializer},
    )
    def post(self, request):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        try:
            cart = clear_cart(owner=owner)
        except CommerceError as exc:
            return error_response(exc)
        return Response(CartReadSerializer.from_state(cart=cart).data, status=status.HTTP_200_OK)


class CartPromoView(CartOwnerMixin, APIView):
    """Apply a promo code to the cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Apply promo code",
        description="`WELCOME10` takes 10% off the subtotal, `FREESHIP` waives shipping.",
        request=PromoCodeSerializer,
        parameters=[SESSION_PARAMETER],
        responses={200: CartReadSerializer, 400: ERROR_RESPONSE},
        examples=[OpenApiExample("Promo", value={"code": "WELCOME10"}, request_only=True)],
    )
    def post(self, request):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        serializer = PromoCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            cart = apply_promo(owner=owner, code=serializer.validated_data["code"])
        except CommerceError as exc:
            return error_response(exc)
        return Response(CartReadSerializer.from_state(cart=cart).data, status=status.HTTP_200_OK)


class CartValidateView(CartOwnerMixin, APIView):
    """Reconcile the cart with current stock before checkout."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Validate cart",
        description="Removes lines for unavailable products and clamps the rest to current stock.",
        parameters=[SESSION_PARAMETER],
        responses={
            200: inline_serializer(
                name="CartValidation",
                fields={
                    "cart": CartReadSerializer(),
                    "removed": rf_serializers.ListField(child=rf_serializers.CharField()),
                    "adjusted": rf_serializers.ListField(child=rf_serializers.CharField()),
                },
            )
        },
    )
    def post(self, request):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        try:
            report = validate_cart(owner=owner)
        except CommerceError as exc:
            return error_response(exc)
        return Response(
            {
                "cart": CartReadSerializer.from_state(cart=report.cart).data,
                "removed": [line.id for line in report.removed],
                "adjusted": [line.id for line in report.adjusted],
            },
            status=status.HTTP_200_OK,
        )


class MergeGuestCartView(APIView):
    """Authenticated endpoint to merge a guest cart into the user's cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Merge guest cart into user cart",
        description="Provide X-Session-Id header; merges guest items into the account cart and discards the guest cart.",
        parameters=[
            OpenApiParameter(
                name=SESSION_HEADER,
                location=OpenApiParameter.HEADER,
                required=True,
                description="Guest session identifier",
                type=str,
            )
        ],
        responses={200: CartReadSerializer, 400: ERROR_RESPONSE},
    )
    def post(self, request):
        token = session_token(request)
        if not token:
            return Response(MISSING_SESSION, status=status.HTTP_400_BAD_REQUEST)
        try:
            cart = merge_guest_cart(
                session_owner=CartOwner.for_session(token),
                account_owner=CartOwner.for_user(request.user),
            )
        except CommerceError as exc:
            return error_response(exc)
        return Response(CartReadSerializer.from_state(cart=cart).data, status=status.HTTP_200_OK)


class CartCheckoutView(CartOwnerMixin, APIView):
    """Place an order from the cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Checkout cart",
        description=(
            "Reserves stock for every line, creates the order snapshot and empties the cart. "
            "Nothing is reserved when any line is short on stock."
        ),
        request=CheckoutSerializer,
        parameters=[
            SESSION_PARAMETER,
            OpenApiParameter(
                name="Idempotency-Key",
                location=OpenApiParameter.HEADER,
                required=False,
                description="When provided, checkout becomes idempotent for this owner+path+method",
                type=str,
            ),
        ],
        responses={201: OrderSerializer, 400: ERROR_RESPONSE, 409: ERROR_RESPONSE},
        examples=[
            OpenApiExample(
                "Checkout",
                value={
                    "shipping": {
                        "name": "Ana Ruiz",
                        "street": "12 Bark St",
                        "city": "Austin",
                        "state": "TX",
                        "zip_code": "73301",
                        "country": "US",
                        "phone": "+15125550100",
                    },
                    "payment_method": "credit_card",
                    "notes": "Leave at the door",
                },
                request_only=True,
            ),
            OpenApiExample(
                "Out of stock",
                value={
                    "detail": "Not enough stock for Salmon Kibble 5kg. Only 1 available.",
                    "code": "insufficient_stock",
                    "product_id": 100,
                    "requested": 3,
                    "available": 1,
                },
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        owner = self.get_owner(request)
        if owner is None:
            return self.missing_owner()
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _checkout_handler():
            try:
                order = checkout(owner=owner, **serializer.validated_data)
            except CommerceError as exc:
                return error_payload(exc)
            return OrderSerializer(order, context={"request": request}).data, status.HTTP_201_CREATED

        body, code = run_idempotent(request, _checkout_handler, session_key=owner.session_key)
        return Response(body, status=code)
