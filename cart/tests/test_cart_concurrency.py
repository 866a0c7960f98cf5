import threading
from typing import List

import pytest
from cart.models import Cart
from cart.owners import CartOwner
from cart.services import add_item
from catalog.tests.factories import ProductFactory
from django.db import close_old_connections, connection
from users.tests.factories import UserFactory


def _add_worker(barrier: threading.Barrier, owner: CartOwner, product_id: int, errors: List[Exception]):
    close_old_connections()
    barrier.wait()
    try:
        add_item(owner=owner, product_id=product_id, quantity=1)
    except Exception as exc:
        errors.append(exc)
    finally:
        connection.close()


@pytest.mark.django_db(transaction=True)
def test_concurrent_first_adds_to_new_account_cart_keep_both_lines():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    owner = CartOwner.for_user(UserFactory())
    first = ProductFactory(stock=5)
    second = ProductFactory(stock=5)

    barrier = threading.Barrier(2)
    errors: List[Exception] = []
    threads = [
        threading.Thread(target=_add_worker, args=(barrier, owner, product.id, errors)) for product in (first, second)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    cart = Cart.objects.get(user_id=owner.user_id)
    assert sorted(cart.items.values_list("product_id", flat=True)) == sorted([first.id, second.id])


@pytest.mark.django_db(transaction=True)
def test_concurrent_first_adds_of_same_product_accumulate():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    owner = CartOwner.for_user(UserFactory())
    product = ProductFactory(stock=5)

    barrier = threading.Barrier(2)
    errors: List[Exception] = []
    threads = [threading.Thread(target=_add_worker, args=(barrier, owner, product.id, errors)) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    item = Cart.objects.get(user_id=owner.user_id).items.get()
    assert item.quantity == 2
