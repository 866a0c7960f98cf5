"""Cart storage backends.

Both backends load a cart into a `CartState`, let the services mutate it in
memory, and persist it back. They share one contract so the services and the
checkout never need to know which one served a cart:

- `DatabaseCartBackend` keeps account carts in the `Cart`/`CartItem` tables.
- `CacheCartBackend` keeps guest carts in the Django cache keyed by the
  session token, expiring after `GUEST_CART_TTL_SECONDS` of inactivity.

`lock(owner)` serializes mutations for a single owner.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from common.errors import CommerceError
from common.pricing import ZERO, Totals, compute_totals, round2, to_decimal
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import transaction

from .models import Cart, CartItem
from .owners import CartOwner
from .promotions import get_promotion

logger = logging.getLogger("pawmart.cart")


def new_line_id() -> str:
    return uuid.uuid4().hex


@dataclass
class CartLine:
    id: str
    product_id: Optional[int]
    quantity: int
    unit_price: Decimal
    name: str = ""
    image: str = ""

    @property
    def line_total(self) -> Decimal:
        return round2(to_decimal(self.unit_price) * int(self.quantity))

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": int(self.quantity),
            "unit_price": str(self.unit_price),
            "name": self.name,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        return cls(
            id=data["id"],
            product_id=data.get("product_id"),
            quantity=int(data["quantity"]),
            unit_price=to_decimal(data.get("unit_price")),
            name=data.get("name", ""),
            image=data.get("image", ""),
        )


@dataclass
class CartState:
    owner: CartOwner
    lines: list = field(default_factory=list)
    promo_code: str = ""
    persisted: bool = False

    def find_line(self, line_id) -> Optional[CartLine]:
        line_id = str(line_id)
        return next((line for line in self.lines if line.id == line_id), None)

    def line_for_product(self, product_id) -> Optional[CartLine]:
        return next((line for line in self.lines if line.product_id == product_id), None)

    @property
    def count(self) -> int:
        return sum(int(line.quantity) for line in self.lines)

    def discount_for(self, subtotal: Decimal) -> Decimal:
        promo = get_promotion(self.promo_code)
        return promo.discount_for(subtotal) if promo else ZERO

    def totals(self, lines=None) -> Totals:
        """Totals for this cart, or for `lines` priced under this cart's promo."""

        lines = self.lines if lines is None else list(lines)
        promo = get_promotion(self.promo_code)
        subtotal = compute_totals(lines).subtotal
        return compute_totals(
            lines,
            self.discount_for(subtotal),
            free_shipping=bool(promo and promo.free_shipping),
        )

    def reset(self) -> None:
        self.lines = []
        self.promo_code = ""


class CartBackend:
    """Storage contract shared by account and guest carts."""

    def load(self, owner: CartOwner) -> CartState:
        raise NotImplementedError

    def save(self, state: CartState) -> CartState:
        raise NotImplementedError

    def discard(self, owner: CartOwner) -> None:
        raise NotImplementedError

    @contextmanager
    def lock(self, owner: CartOwner):
        raise NotImplementedError
        yield  # pragma: no cover


class DatabaseCartBackend(CartBackend):
    """Account carts persisted in the database."""

    def load(self, owner: CartOwner) -> CartState:
        cart = Cart.objects.filter(user_id=owner.user_id).first()
        if cart is None:
            return CartState(owner=owner)
        lines = [
            CartLine(
                id=item.line_id,
                product_id=item.product_id,
                quantity=int(item.quantity),
                unit_price=item.unit_price,
                name=item.name,
                image=item.image,
            )
            for item in cart.items.order_by("id")
        ]
        return CartState(owner=owner, lines=lines, promo_code=cart.promo_code, persisted=True)

    @transaction.atomic
    def save(self, state: CartState) -> CartState:
        cart, _ = Cart.objects.get_or_create(user_id=state.owner.user_id)
        existing = {item.line_id: item for item in cart.items.all()}
        keep = {line.id for line in state.lines}
        stale = [item.id for line_id, item in existing.items() if line_id not in keep]
        if stale:
            CartItem.objects.filter(id__in=stale).delete()
        for line in state.lines:
            item = existing.get(line.id)
            if item is None:
                CartItem.objects.create(
                    cart=cart,
                    line_id=line.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    name=line.name,
                    image=line.image,
                )
            elif (item.quantity, item.unit_price, item.name, item.image) != (
                line.quantity,
                line.unit_price,
                line.name,
                line.image,
            ):
                item.quantity = line.quantity
                item.unit_price = line.unit_price
                item.name = line.name
                item.image = line.image
                item.save(update_fields=["quantity", "unit_price", "name", "image", "updated_at"])

        totals = state.totals()
        cart.promo_code = state.promo_code
        cart.subtotal = totals.subtotal
        cart.tax = totals.tax
        cart.shipping = totals.shipping
        cart.discount = totals.discount
        cart.total = totals.total
        cart.save(update_fields=["promo_code", "subtotal", "tax", "shipping", "discount", "total", "updated_at"])
        state.persisted = True
        return state

    def discard(self, owner: CartOwner) -> None:
        Cart.objects.filter(user_id=owner.user_id).delete()

    @contextmanager
    def lock(self, owner: CartOwner):
        # Lock the account row; it exists before the first cart write does
        with transaction.atomic():
            list(get_user_model().objects.select_for_update().filter(id=owner.user_id).values_list("id", flat=True))
            yield


class CartLockTimeout(CommerceError):
    """Raised when another request holds a guest cart for too long."""

    code = "cart_busy"
    default_detail = "Your cart is being updated, please retry."
    status_code = 409


class CacheCartBackend(CartBackend):
    """Guest carts stored in the cache under the session token."""

    key_prefix = "cart:guest:"

    def __init__(self, cache_backend=None):
        self.cache = cache_backend or cache

    def _key(self, owner: CartOwner) -> str:
        return f"{self.key_prefix}{owner.session_key}"

    @property
    def ttl(self) -> int:
        return int(getattr(settings, "GUEST_CART_TTL_SECONDS", 60 * 60 * 24 * 14))

    def load(self, owner: CartOwner) -> CartState:
        data = self.cache.get(self._key(owner))
        if not data:
            return CartState(owner=owner)
        return CartState(
            owner=owner,
            lines=[CartLine.from_dict(line) for line in data.get("items", [])],
            promo_code=data.get("promo_code", ""),
            persisted=True,
        )

    def save(self, state: CartState) -> CartState:
        totals = state.totals()
        payload = {
            "items": [line.as_dict() for line in state.lines],
            "promo_code": state.promo_code,
            "totals": {name: str(value) for name, value in totals.as_dict().items()},
        }
        self.cache.set(self._key(state.owner), payload, timeout=self.ttl)
        state.persisted = True
        return state

    def discard(self, owner: CartOwner) -> None:
        self.cache.delete(self._key(owner))

    @contextmanager
    def lock(self, owner: CartOwner):
        lock_key = f"{self._key(owner)}:lock"
        token = uuid.uuid4().hex
        timeout = int(getattr(settings, "CART_LOCK_TIMEOUT_SECONDS", 10))
        deadline = time.monotonic() + float(getattr(settings, "CART_LOCK_WAIT_SECONDS", 5))
        # cache.add only succeeds when the key is absent (SET NX on Redis)
        while not self.cache.add(lock_key, token, timeout=timeout):
            if time.monotonic() >= deadline:
                logger.warning("cart.lock_timeout", extra={"event": "cart.lock_timeout", "owner": owner.key})
                raise CartLockTimeout(f"Cart for {owner.key} is busy")
            time.sleep(0.05)
        try:
            yield
        finally:
            if self.cache.get(lock_key) == token:
                self.cache.delete(lock_key)


_database_backend = DatabaseCartBackend()
_cache_backend = CacheCartBackend()


def backend_for(owner: CartOwner) -> CartBackend:
    return _cache_backend if owner.is_guest else _database_backend
