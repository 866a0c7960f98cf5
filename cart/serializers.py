"""Cart serializers for read and write operations."""

from rest_framework import serializers


class CartItemReadSerializer(serializers.Serializer):
    """Read serializer for a cart line."""

    id = serializers.CharField()
    product_id = serializers.IntegerField(allow_null=True)
    name = serializers.CharField()
    image = serializers.CharField(allow_blank=True)
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2)


class CartReadSerializer(serializers.Serializer):
    """Read serializer for the cart summary and items."""

    owner = serializers.CharField()
    items = CartItemReadSerializer(many=True)
    count = serializers.IntegerField()
    promo_code = serializers.CharField(allow_blank=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2)
    shipping = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)

    @classmethod
    def from_state(cls, *, cart):
        totals = cart.totals()
        return cls(
            {
                "owner": cart.owner.key,
                "items": list(cart.lines),
                "count": cart.count,
                "promo_code": cart.promo_code,
                **totals.as_dict(),
            }
        )


class AddItemSerializer(serializers.Serializer):
    """Write serializer for adding a product to the cart."""

    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateItemQuantitySerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class PromoCodeSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32)
