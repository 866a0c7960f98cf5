from decimal import Decimal

import pytest
from catalog.selectors import get_product, get_products
from catalog.tests.factories import ProductFactory
from django.db import IntegrityError, transaction


@pytest.mark.django_db
def test_effective_price_uses_sale_price_only_when_on_sale():
    product = ProductFactory(price=Decimal("25.00"), sale_price=Decimal("19.99"), on_sale=False)
    assert product.effective_price == Decimal("25.00")

    product.on_sale = True
    assert product.effective_price == Decimal("19.99")

    product.sale_price = None
    assert product.effective_price == Decimal("25.00")


@pytest.mark.django_db
def test_selectors_hide_inactive_and_missing_products():
    active = ProductFactory()
    hidden = ProductFactory(is_active=False)

    assert get_product(active.id) == active
    assert get_product(hidden.id) is None
    assert get_product(999999) is None
    assert get_product("abc") is None
    assert set(get_products([active.id, hidden.id])) == {active.id}


@pytest.mark.django_db
def test_negative_stock_is_rejected_by_database():
    product = ProductFactory(stock=1)

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            type(product).objects.filter(id=product.id).update(stock=-1)
