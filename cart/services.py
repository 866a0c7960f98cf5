"""Cart services: mutations over account and guest carts.

Every mutation runs under the owner's lock, loads the cart from its backend,
changes it in memory and saves it back, which recomputes the totals.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from catalog.selectors import get_product, get_products
from common.errors import EmptyCart, InsufficientStock, InvalidQuantity, NotFound, ValidationError

from .backends import CartLine, CartState, backend_for, new_line_id
from .owners import CartOwner
from .promotions import get_promotion, normalize_code

logger = logging.getLogger("pawmart.cart")

STOCK_ADJUSTED_WARNING = "Quantity adjusted to available stock"


@dataclass(frozen=True)
class AddItemResult:
    item: CartLine
    adjusted: bool = False
    warning: Optional[str] = None


@dataclass
class CartValidation:
    cart: CartState
    removed: list = field(default_factory=list)
    adjusted: list = field(default_factory=list)


def _positive_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantity("Quantity must be at least 1")
    return quantity


def _log(event: str, owner: CartOwner, level=logging.INFO, **fields) -> None:
    logger.log(
        level,
        event,
        extra={
            "event": event,
            "owner": owner.key,
            "user_id": owner.user_id,
            "session_id": owner.session_key,
            "guest": owner.is_guest,
            **fields,
        },
    )


def get_cart(*, owner: CartOwner) -> CartState:
    """Return the owner's cart without creating storage for it."""

    return backend_for(owner).load(owner)


def get_count(*, owner: CartOwner) -> int:
    """Total quantity across lines; 0 when the owner has no cart."""

    return get_cart(owner=owner).count


def add_item(*, owner: CartOwner, product_id, quantity: int) -> AddItemResult:
    """Add a product to the cart, or increment its line.

    The cumulative quantity is clamped to the product's current stock and the
    result carries a warning when that happens. Only an out-of-stock product
    is rejected outright.
    """

    quantity = _positive_quantity(quantity)
    product = get_product(product_id)
    if product is None:
        raise NotFound("Product not found")

    backend = backend_for(owner)
    with backend.lock(owner):
        state = backend.load(owner)
        line = state.line_for_product(product.id)
        requested = (line.quantity if line else 0) + quantity
        available = max(int(product.stock), 0)
        if available < 1:
            raise InsufficientStock(
                "Not enough stock available",
                product_id=product.id,
                requested=requested,
                available=available,
            )
        adjusted = requested > available
        final_qty = min(requested, available)
        price = product.effective_price

        if line is None:
            line = CartLine(
                id=new_line_id(),
                product_id=product.id,
                quantity=final_qty,
                unit_price=price,
                name=product.name,
                image=product.main_image,
            )
            state.lines.append(line)
            event = "cart.item_added"
        else:
            line.quantity = final_qty
            line.unit_price = price
            line.name = product.name
            line.image = product.main_image
            event = "cart.item_updated"
        backend.save(state)

    _log(event, owner, product_id=product.id, quantity=final_qty)
    if adjusted:
        _log(
            "cart.quantity_adjusted",
            owner,
            level=logging.WARNING,
            product_id=product.id,
            requested=requested,
            available=available,
        )
    return AddItemResult(item=line, adjusted=adjusted, warning=STOCK_ADJUSTED_WARNING if adjusted else None)


def update_item_quantity(*, owner: CartOwner, item_id, quantity: int) -> CartLine:
    """Set a line's quantity; exceeding current stock is a hard failure here."""

    quantity = _positive_quantity(quantity)
    backend = backend_for(owner)
    with backend.lock(owner):
        state = backend.load(owner)
        line = state.find_line(item_id)
        if line is None:
            raise NotFound("Item not found in cart")
        product = get_product(line.product_id) if line.product_id is not None else None
        if product is None:
            raise NotFound("Product not found")
        if quantity > int(product.stock):
            raise InsufficientStock(
                "Not enough stock available",
                product_id=product.id,
                requested=quantity,
                available=int(product.stock),
            )
        line.quantity = quantity
        backend.save(state)

    _log("cart.item_updated", owner, item_id=line.id, product_id=line.product_id, quantity=quantity)
    return line


def remove_item(*, owner: CartOwner, item_id) -> None:
    """Remove a line; unknown ids are a no-op."""

    backend = backend_for(owner)
    with backend.lock(owner):
        state = backend.load(owner)
        line = state.find_line(item_id)
        if line is None:
            return
        state.lines.remove(line)
        backend.save(state)
    _log("cart.item_removed", owner, item_id=line.id, product_id=line.product_id)


def clear_cart(*, owner: CartOwner) -> CartState:
    """Empty the cart and drop any promo code."""

    backend = backend_for(owner)
    with backend.lock(owner):
        state = backend.load(owner)
        if not state.persisted:
            return state
        state.reset()
        backend.save(state)
    _log("cart.cleared", owner)
    return state


def apply_promo(*, owner: CartOwner, code: str) -> CartState:
    """Attach a promo code (`WELCOME10`, `FREESHIP`) to a non-empty cart."""

    promo = get_promotion(code)
    if promo is None:
        raise ValidationError("Invalid promo code", fields=["code"])
    backend = backend_for(owner)
    with backend.lock(owner):
        state = backend.load(owner)
        if not state.lines:
            raise EmptyCart()
        state.promo_code = promo.code
        backend.save(state)
    _log("cart.promo_applied", owner, promo_code=normalize_code(code))
    return state


def validate_cart(*, owner: CartOwner) -> CartValidation:
    """Drop lines whose product is gone or out of stock and clamp the rest to stock."""

    backend = backend_for(owner)
    with backend.lock(owner):
        state = backend.load(owner)
        report = CartValidation(cart=state)
        if not state.lines:
            return report
        products = get_products(line.product_id for line in state.lines if line.product_id is not None)
        kept = []
        for line in state.lines:
            product = products.get(line.product_id)
            if product is None or int(product.stock) < 1:
                report.removed.append(line)
                continue
            if line.quantity > int(product.stock):
                line.quantity = int(product.stock)
                report.adjusted.append(line)
            kept.append(line)
        if report.removed or report.adjusted:
            state.lines = kept
            backend.save(state)
    if report.removed or report.adjusted:
        _log(
            "cart.validated",
            owner,
            level=logging.WARNING,
            removed=[line.id for line in report.removed],
            adjusted=[line.id for line in report.adjusted],
        )
    return report


def merge_guest_cart(*, session_owner: CartOwner, account_owner: CartOwner) -> CartState:
    """Fold a guest cart into an account cart and discard the guest cart.

    Shared products add quantities, clamped to current stock; other lines are
    copied with their captured price. Lines for deleted or out-of-stock
    products are dropped. Callers run this once per login; the store does not
    deduplicate merges.
    """

    if not session_owner.is_guest or account_owner.is_guest:
        raise ValueError("merge_guest_cart expects a guest owner and an account owner")

    guest_backend = backend_for(session_owner)
    account_backend = backend_for(account_owner)
    with guest_backend.lock(session_owner), account_backend.lock(account_owner):
        guest = guest_backend.load(session_owner)
        account = account_backend.load(account_owner)
        if not guest.lines:
            guest_backend.discard(session_owner)
            return account

        products = get_products(line.product_id for line in guest.lines if line.product_id is not None)
        merged = 0
        for guest_line in guest.lines:
            product = products.get(guest_line.product_id)
            if product is None:
                _log(
                    "cart.merge_skipped",
                    account_owner,
                    level=logging.WARNING,
                    product_id=guest_line.product_id,
                )
                continue
            available = max(int(product.stock), 0)
            line = account.line_for_product(product.id)
            if line is not None:
                line.quantity = min(line.quantity + guest_line.quantity, available)
                if line.quantity < 1:
                    account.lines.remove(line)
            elif available >= 1:
                account.lines.append(
                    CartLine(
                        id=new_line_id(),
                        product_id=product.id,
                        quantity=min(guest_line.quantity, available),
                        unit_price=guest_line.unit_price,
                        name=guest_line.name,
                        image=guest_line.image,
                    )
                )
            merged += 1
        if not account.promo_code and guest.promo_code:
            account.promo_code = guest.promo_code
        account_backend.save(account)
        guest_backend.discard(session_owner)

    _log("cart.merged", account_owner, merged_lines=merged, src=session_owner.key)
    return account
