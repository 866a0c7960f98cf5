import threading
from typing import List

import pytest
from catalog.models import Product
from catalog.tests.factories import ProductFactory
from common.errors import InsufficientStock, InvalidQuantity, NotFound
from django.db import close_old_connections, connection
from inventory.models import StockMovement
from inventory.services import current_stock, release, reserve


@pytest.mark.django_db
def test_reserve_decrements_stock_and_records_movement():
    product = ProductFactory(stock=10)

    reserve(product_id=product.id, quantity=3, reference="order:ORD-000001")

    assert current_stock(product.id) == 7
    movement = StockMovement.objects.get(product=product)
    assert movement.movement_type == StockMovement.TYPE_OUTBOUND
    assert movement.quantity == -3
    assert movement.reference == "order:ORD-000001"


@pytest.mark.django_db
def test_reserve_exact_stock_reaches_zero():
    product = ProductFactory(stock=2)

    reserve(product_id=product.id, quantity=2)

    assert current_stock(product.id) == 0


@pytest.mark.django_db
def test_reserve_more_than_available_fails_without_change():
    product = ProductFactory(stock=2, name="Chew Toy")

    with pytest.raises(InsufficientStock) as exc:
        reserve(product_id=product.id, quantity=3)

    assert exc.value.product_id == product.id
    assert exc.value.requested == 3
    assert exc.value.available == 2
    assert "Chew Toy" in exc.value.detail
    assert current_stock(product.id) == 2
    assert not StockMovement.objects.exists()


@pytest.mark.django_db
def test_reserve_missing_product_is_not_found():
    with pytest.raises(NotFound):
        reserve(product_id=424242, quantity=1)


@pytest.mark.django_db
@pytest.mark.parametrize("quantity", [0, -2, 2.5, True])
def test_ledger_rejects_invalid_quantities(quantity):
    product = ProductFactory(stock=5)

    with pytest.raises(InvalidQuantity):
        reserve(product_id=product.id, quantity=quantity)
    with pytest.raises(InvalidQuantity):
        release(product_id=product.id, quantity=quantity)


@pytest.mark.django_db
def test_release_increments_stock_without_upper_bound():
    product = ProductFactory(stock=1)

    assert release(product_id=product.id, quantity=5, reference="order:ORD-000002") is True

    assert current_stock(product.id) == 6
    movement = StockMovement.objects.get(product=product)
    assert movement.movement_type == StockMovement.TYPE_INBOUND
    assert movement.quantity == 5


@pytest.mark.django_db
def test_release_for_deleted_product_is_noop():
    product = ProductFactory(stock=1)
    product_id = product.id
    product.delete()

    assert release(product_id=product_id, quantity=1) is False
    assert not StockMovement.objects.exists()


def _reserve_worker(barrier: threading.Barrier, product_id: int, qty: int, successes: List[int], errors: List[Exception]):
    close_old_connections()
    barrier.wait()
    try:
        reserve(product_id=product_id, quantity=qty)
        successes.append(qty)
    except InsufficientStock as exc:
        errors.append(exc)
    finally:
        connection.close()


@pytest.mark.django_db(transaction=True)
def test_threaded_competing_reservations_never_oversell():
    if connection.vendor == "sqlite":
        pytest.skip("SQLite lacks real concurrent transactions; skipping threaded test.")
    product = ProductFactory(stock=3)

    barrier = threading.Barrier(2)
    successes: List[int] = []
    errors: List[Exception] = []
    threads = [
        threading.Thread(target=_reserve_worker, args=(barrier, product.id, 2, successes, errors)) for _ in range(2)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(successes) == 1
    assert len(errors) == 1
    assert Product.objects.get(id=product.id).stock == 1
