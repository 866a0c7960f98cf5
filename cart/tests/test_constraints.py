from decimal import Decimal

import pytest
from cart.models import Cart, CartItem
from catalog.tests.factories import ProductFactory
from django.db import IntegrityError, transaction
from users.tests.factories import UserFactory


@pytest.mark.django_db
def test_one_line_per_product_per_cart():
    cart = Cart.objects.create(user=UserFactory())
    product = ProductFactory()
    CartItem.objects.create(cart=cart, line_id="a", product=product, quantity=1, unit_price=Decimal("1.00"))

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            CartItem.objects.create(cart=cart, line_id="b", product=product, quantity=1, unit_price=Decimal("1.00"))


@pytest.mark.django_db
def test_cart_item_quantity_must_be_positive():
    cart = Cart.objects.create(user=UserFactory())

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            CartItem.objects.create(cart=cart, line_id="z", product=ProductFactory(), quantity=0)


@pytest.mark.django_db
def test_one_cart_per_user():
    user = UserFactory()
    Cart.objects.create(user=user)

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Cart.objects.create(user=user)
