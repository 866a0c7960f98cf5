"""Email utilities for the orders app.

Uses Django's email backend, with links composed from FRONTEND_URL.
"""

from django.conf import settings
from django.core.mail import send_mail


def _order_url(order) -> str:
    frontend = getattr(settings, "FRONTEND_URL", "")
    if not frontend:
        return ""
    return f"{frontend.rstrip('/')}/orders/{order.id}"


def send_order_placed_email(order) -> None:
    """Send an order confirmation to the order's email address.

    Lists the snapshot lines and totals. Silently no-ops if no email is present.
    """
    to_email = order.email or getattr(order.user, "email", None)
    if not to_email:
        return

    lines = "\n".join(
        f"- {item.product_name} x{item.quantity} @ {item.unit_price}" for item in order.items.all()
    )
    body = (
        "Thank you for your order!\n\n"
        f"Order: {order.number or order.id}\n"
        f"Status: {order.status}\n\n"
        f"{lines}\n\n"
        f"Subtotal: {order.subtotal}\n"
        f"Tax: {order.tax}\n"
        f"Shipping: {order.shipping}\n"
        f"Discount: {order.discount}\n"
        f"Total: {order.total}\n"
    )
    url = _order_url(order)
    if url:
        body += f"\nYou can view your order here: {url}\n"

    send_mail(
        f"Your order {order.number or order.id} has been placed",
        body,
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [to_email],
        fail_silently=True,
    )


def send_order_status_email(order) -> None:
    """Notify the customer that their order moved to a new status."""
    to_email = order.email or getattr(order.user, "email", None)
    if not to_email:
        return

    body = f"Order {order.number or order.id} is now {order.status}.\n"
    if order.tracking_number:
        body += f"Tracking number: {order.tracking_number}\n"

    send_mail(
        f"Update on order {order.number or order.id}",
        body,
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [to_email],
        fail_silently=True,
    )
