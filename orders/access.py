"""Role and ownership checks for orders.

Customers own their orders, admins and co-admins manage every order, and a
seller may view and advance the status of orders that contain their items.
Only the owner or an admin may cancel.
"""

from decimal import Decimal

from common.errors import Unauthorized


def is_admin(user) -> bool:
    return bool(getattr(user, "is_superuser", False) or getattr(user, "is_marketplace_admin", False))


def is_owner(user, order) -> bool:
    return order.user_id is not None and order.user_id == getattr(user, "id", None)


def seller_items(order, seller) -> list:
    """Order items attributed to `seller` through the seller copied at checkout."""

    seller_id = getattr(seller, "id", seller)
    return [item for item in order.items.all() if item.seller_id == seller_id]


def seller_total(order, seller) -> Decimal:
    return sum((item.line_total for item in seller_items(order, seller)), Decimal("0.00"))


def can_view(user, order) -> bool:
    return is_owner(user, order) or is_admin(user) or bool(seller_items(order, user))


def can_manage(user, order) -> bool:
    return is_admin(user) or bool(seller_items(order, user))


def can_cancel(user, order) -> bool:
    return is_owner(user, order) or is_admin(user)


def ensure_can_view(user, order) -> None:
    if not can_view(user, order):
        raise Unauthorized("You are not authorized to view this order.")


def ensure_can_manage(user, order) -> None:
    if not can_manage(user, order):
        raise Unauthorized("You are not authorized to update this order.")


def ensure_can_cancel(user, order) -> None:
    if not can_cancel(user, order):
        raise Unauthorized("You are not authorized to cancel this order.")
