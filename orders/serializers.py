"""DRF serializers for Orders.

Orders expose the totals persisted at checkout; they are never recomputed
from the current catalog.
"""

from common.choices import OrderStatus
from common.pricing import round2
from rest_framework import serializers

from .access import seller_items, seller_total
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    """API representation of an order line item with computed line_total."""

    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_name",
            "image",
            "seller",
            "quantity",
            "unit_price",
            "line_total",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """API representation for an order snapshot."""

    items = OrderItemSerializer(many=True, read_only=True)
    shipping_address = serializers.DictField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "status",
            "payment_method",
            "payment_status",
            "email",
            "shipping_address",
            "items",
            "subtotal",
            "tax",
            "shipping",
            "discount",
            "total",
            "tracking_number",
            "notes",
            "estimated_delivery",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class SellerOrderSerializer(serializers.ModelSerializer):
    """Seller-facing order view limited to the requesting seller's items."""

    items = serializers.SerializerMethodField()
    seller_total = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ["id", "number", "status", "created_at", "items", "seller_total"]
        read_only_fields = fields

    def _seller(self):
        return self.context["request"].user

    def get_items(self, obj: Order) -> list:
        return OrderItemSerializer(seller_items(obj, self._seller()), many=True).data

    def get_seller_total(self, obj: Order) -> str:
        return str(round2(seller_total(obj, self._seller())))


class ShippingAddressSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120, required=False, allow_blank=True)
    street = serializers.CharField(max_length=200, required=False, allow_blank=True)
    city = serializers.CharField(max_length=80, required=False, allow_blank=True)
    state = serializers.CharField(max_length=80, required=False, allow_blank=True)
    zip_code = serializers.CharField(max_length=16, required=False, allow_blank=True)
    country = serializers.CharField(max_length=80, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)


class CheckoutSerializer(serializers.Serializer):
    """Checkout input.

    Field presence is checked by the checkout service so missing shipping
    fields are reported together with a stable error code.
    """

    shipping = ShippingAddressSerializer(required=False, default=dict)
    payment_method = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_null=True, default=None)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    tracking_number = serializers.CharField(max_length=64, required=False, allow_blank=True)
