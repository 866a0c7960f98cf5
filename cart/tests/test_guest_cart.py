from decimal import Decimal

import pytest
from cart.backends import CacheCartBackend, CartLockTimeout, DatabaseCartBackend, backend_for
from cart.models import Cart
from cart.owners import CartOwner
from cart.services import add_item, apply_promo, get_cart, get_count, merge_guest_cart, remove_item
from catalog.tests.factories import ProductFactory
from django.core.cache import cache
from users.tests.factories import UserFactory


def test_owner_requires_exactly_one_identity():
    with pytest.raises(ValueError):
        CartOwner()
    with pytest.raises(ValueError):
        CartOwner(user_id=1, session_key="abc")
    assert CartOwner.for_session("abc").key == "session:abc"
    assert CartOwner(user_id=7).key == "user:7"


def test_backend_for_picks_storage_by_owner_kind():
    assert isinstance(backend_for(CartOwner.for_session("s1")), CacheCartBackend)
    assert isinstance(backend_for(CartOwner(user_id=1)), DatabaseCartBackend)


@pytest.mark.django_db
def test_guest_cart_lives_in_cache_not_database():
    guest = CartOwner.for_session("sess-1")
    product = ProductFactory(price=Decimal("20.00"), stock=10)

    add_item(owner=guest, product_id=product.id, quantity=3)

    assert Cart.objects.count() == 0
    payload = cache.get("cart:guest:sess-1")
    assert payload["items"][0]["quantity"] == 3
    assert payload["totals"]["subtotal"] == "60.00"
    assert get_count(owner=guest) == 3


@pytest.mark.django_db
def test_guest_carts_are_isolated_per_session():
    product = ProductFactory(stock=10)
    add_item(owner=CartOwner.for_session("a"), product_id=product.id, quantity=2)

    assert get_cart(owner=CartOwner.for_session("b")).lines == []


@pytest.mark.django_db
def test_guest_cart_behaves_like_account_cart():
    product = ProductFactory(price=Decimal("19.99"), stock=3)
    guest = CartOwner.for_session("sess-2")
    account = CartOwner.for_user(UserFactory())

    for owner in (guest, account):
        add_item(owner=owner, product_id=product.id, quantity=2)
        result = add_item(owner=owner, product_id=product.id, quantity=2)
        assert result.adjusted is True
        assert result.item.quantity == 3

    assert get_cart(owner=guest).totals() == get_cart(owner=account).totals()


@pytest.mark.django_db
def test_guest_remove_item_round_trip():
    guest = CartOwner.for_session("sess-3")
    product = ProductFactory(stock=10)
    line = add_item(owner=guest, product_id=product.id, quantity=1).item

    remove_item(owner=guest, item_id=line.id)

    assert get_cart(owner=guest).lines == []


def test_guest_lock_times_out_when_held(settings):
    settings.CART_LOCK_WAIT_SECONDS = 0.1
    backend = CacheCartBackend()
    guest = CartOwner.for_session("busy")

    with backend.lock(guest):
        with pytest.raises(CartLockTimeout):
            with backend.lock(guest):
                pass

    # Released after the outer block exits
    with backend.lock(guest):
        pass


@pytest.mark.django_db
def test_merge_clamps_shared_product_to_stock_and_discards_guest_cart():
    product = ProductFactory(stock=2)
    guest = CartOwner.for_session("sess-merge")
    account = CartOwner.for_user(UserFactory())
    add_item(owner=guest, product_id=product.id, quantity=2)
    add_item(owner=account, product_id=product.id, quantity=1)

    merged = merge_guest_cart(session_owner=guest, account_owner=account)

    assert [(line.product_id, line.quantity) for line in merged.lines] == [(product.id, 2)]
    assert get_cart(owner=account).lines[0].quantity == 2
    assert cache.get("cart:guest:sess-merge") is None
    assert get_cart(owner=guest).lines == []


@pytest.mark.django_db
def test_merge_copies_new_lines_with_captured_price_and_skips_deleted():
    kept = ProductFactory(price=Decimal("20.00"), stock=10)
    gone = ProductFactory(stock=10)
    guest = CartOwner.for_session("sess-copy")
    account = CartOwner.for_user(UserFactory())
    add_item(owner=guest, product_id=kept.id, quantity=2)
    add_item(owner=guest, product_id=gone.id, quantity=1)
    kept.price = Decimal("30.00")
    kept.save(update_fields=["price", "updated_at"])
    gone.delete()

    merged = merge_guest_cart(session_owner=guest, account_owner=account)

    assert len(merged.lines) == 1
    assert merged.lines[0].product_id == kept.id
    assert merged.lines[0].unit_price == Decimal("20.00")
    assert Cart.objects.get(user_id=account.user_id).subtotal == Decimal("40.00")


@pytest.mark.django_db
def test_merge_carries_guest_promo_when_account_has_none():
    product = ProductFactory(stock=10)
    guest = CartOwner.for_session("sess-promo")
    account = CartOwner.for_user(UserFactory())
    add_item(owner=guest, product_id=product.id, quantity=1)
    apply_promo(owner=guest, code="FREESHIP")

    merged = merge_guest_cart(session_owner=guest, account_owner=account)

    assert merged.promo_code == "FREESHIP"


@pytest.mark.django_db
def test_merge_empty_guest_cart_leaves_account_untouched():
    account = CartOwner.for_user(UserFactory())

    merged = merge_guest_cart(session_owner=CartOwner.for_session("empty"), account_owner=account)

    assert merged.lines == []
    assert not Cart.objects.filter(user_id=account.user_id).exists()


def test_merge_rejects_swapped_owners():
    with pytest.raises(ValueError):
        merge_guest_cart(session_owner=CartOwner(user_id=1), account_owner=CartOwner.for_session("s"))
