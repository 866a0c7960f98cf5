"""Order status state machine.

placed -> processing -> shipped -> delivered, with cancelled reachable from
placed or processing only. Delivered and cancelled are terminal. Cancelling
returns every item's quantity to stock and marks the payment refunded.
"""

import logging
from typing import Optional

from common.choices import OrderStatus, PaymentStatus
from common.errors import InvalidTransition, ValidationError
from django.db import transaction
from inventory.services import release

from .emails import send_order_status_email
from .models import Order

logger = logging.getLogger("pawmart.orders")

TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def allowed_transitions(status: str) -> set:
    return TRANSITIONS.get(status, set())


def can_transition(current: str, target: str) -> bool:
    return target in allowed_transitions(current)


@transaction.atomic
def transition_order(order: Order, target: str, *, tracking_number: Optional[str] = None) -> Order:
    """Move an order to `target`, applying the side effects of that status.

    The order row is locked for the duration so two concurrent cancellations
    cannot both release stock. Returns the refreshed order.
    """

    if target not in OrderStatus.values:
        raise ValidationError("Invalid order status", fields=["status"])

    locked = Order.objects.select_for_update().get(pk=order.pk)
    prev = locked.status
    if not can_transition(prev, target):
        raise InvalidTransition(current=prev, target=target)

    locked.status = target
    fields = ["status", "updated_at"]
    if target == OrderStatus.CANCELLED:
        reference = f"order:{locked.number or locked.id}"
        for item in locked.items.all():
            # Products deleted since checkout have nothing to restore
            if item.product_id is None:
                continue
            release(product_id=item.product_id, quantity=int(item.quantity), reference=reference, reason="cancellation")
        locked.payment_status = PaymentStatus.REFUNDED
        fields.append("payment_status")
    if target == OrderStatus.SHIPPED and tracking_number:
        locked.tracking_number = str(tracking_number).strip()
        fields.append("tracking_number")
    locked.save(update_fields=fields)

    logger.info(
        "order_status_changed",
        extra={
            "event": "order_status_changed",
            "order_id": locked.id,
            "user_id": locked.user_id,
            "status_from": prev,
            "status_to": locked.status,
        },
    )
    transaction.on_commit(lambda: send_order_status_email(locked))
    return locked


def cancel_order(order: Order) -> Order:
    """Cancel a placed or processing order; a second cancel raises InvalidTransition."""

    return transition_order(order, OrderStatus.CANCELLED)
