"""Checkout: turn a cart into an immutable order snapshot.

The whole checkout runs under the cart owner's lock and inside one database
transaction. Stock is reserved line by line through the ledger; the first
shortage releases whatever this attempt already reserved and aborts, so a
failed checkout leaves stock and the cart untouched.
"""

import logging
import uuid
from datetime import timedelta
from typing import Optional

from cart.backends import backend_for
from cart.owners import CartOwner
from catalog.selectors import get_products
from common.choices import OrderStatus, PaymentMethod, PaymentStatus
from common.errors import EmptyCart, InsufficientStock, NotFound, ValidationError
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from inventory.models import StockMovement
from inventory.services import release, reserve

from .emails import send_order_placed_email
from .models import Order, OrderItem

logger = logging.getLogger("pawmart.orders")

SHIPPING_FIELDS = ("name", "street", "city", "state", "zip_code", "country", "phone")


def clean_shipping(shipping) -> dict:
    """Return the shipping address with every required field present and stripped."""

    shipping = shipping or {}
    cleaned = {name: str(shipping.get(name) or "").strip() for name in SHIPPING_FIELDS}
    missing = [name for name, value in cleaned.items() if not value]
    if missing:
        raise ValidationError(f"Missing shipping fields: {', '.join(missing)}", fields=missing)
    return cleaned


def clean_payment_method(payment_method) -> str:
    value = str(payment_method or "").strip().lower()
    if value not in PaymentMethod.values:
        raise ValidationError("Invalid payment method", fields=["payment_method"])
    return value


def _default_email(owner: CartOwner) -> Optional[str]:
    if owner.is_guest:
        return None
    return get_user_model().objects.filter(id=owner.user_id).values_list("email", flat=True).first() or None


def _reserve_all(resolved, reference: str) -> list:
    """Reserve every resolved line or none of them.

    Returns the lines actually reserved; a product deleted between resolution
    and reservation is skipped like one deleted before checkout.
    """

    reserved = []
    try:
        for line, product in resolved:
            try:
                reserve(product_id=product.id, quantity=int(line.quantity), reference=reference)
            except NotFound:
                logger.warning(
                    "checkout.product_skipped",
                    extra={"event": "checkout.product_skipped", "product_id": product.id, "line_id": line.id},
                )
                continue
            reserved.append((line, product))
    except InsufficientStock:
        for line, product in reserved:
            release(product_id=product.id, quantity=int(line.quantity), reference=reference, reason="checkout_rollback")
        raise
    return reserved


def checkout(
    *,
    owner: CartOwner,
    shipping: dict,
    payment_method: str,
    notes: str = "",
    email: Optional[str] = None,
) -> Order:
    """Place an order from the owner's cart and empty the cart.

    Raises EmptyCart, ValidationError (shipping fields or payment method) or
    InsufficientStock naming the first product that could not be reserved.
    Lines whose product was deleted are skipped with a warning.
    """

    backend = backend_for(owner)
    with backend.lock(owner), transaction.atomic():
        state = backend.load(owner)
        if not state.lines:
            raise EmptyCart()
        address = clean_shipping(shipping)
        method = clean_payment_method(payment_method)

        products = get_products(line.product_id for line in state.lines if line.product_id is not None)
        resolved = []
        for line in state.lines:
            product = products.get(line.product_id)
            if product is None:
                logger.warning(
                    "checkout.product_skipped",
                    extra={
                        "event": "checkout.product_skipped",
                        "owner": owner.key,
                        "product_id": line.product_id,
                        "line_id": line.id,
                    },
                )
                continue
            resolved.append((line, product))
        if not resolved:
            raise EmptyCart("None of the products in your cart are available anymore.")

        reference = f"checkout:{uuid.uuid4().hex}"
        reserved = _reserve_all(resolved, reference)
        if not reserved:
            raise EmptyCart("None of the products in your cart are available anymore.")

        # Prices come from the cart lines, never from the product rows
        totals = state.totals(line for line, _ in reserved)
        days = int(getattr(settings, "ORDER_ESTIMATED_DELIVERY_DAYS", 7))
        order = Order.objects.create(
            user_id=owner.user_id,
            guest_session=owner.session_key or "",
            email=email or _default_email(owner),
            status=OrderStatus.PLACED,
            payment_method=method,
            payment_status=PaymentStatus.COMPLETED,
            ship_name=address["name"],
            ship_street=address["street"],
            ship_city=address["city"],
            ship_state=address["state"],
            ship_zip_code=address["zip_code"],
            ship_country=address["country"],
            ship_phone=address["phone"],
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping=totals.shipping,
            discount=totals.discount,
            total=totals.total,
            notes=str(notes or "").strip(),
            estimated_delivery=timezone.now() + timedelta(days=days),
        )
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=product.id,
                    product_name=line.name or product.name,
                    image=line.image or "",
                    seller_id=product.seller_id,
                    quantity=int(line.quantity),
                    unit_price=line.unit_price,
                )
                for line, product in reserved
            ]
        )
        order.number = f"ORD-{int(order.id):06d}"
        order.save(update_fields=["number", "updated_at"])
        StockMovement.objects.filter(reference=reference).update(reference=f"order:{order.number}")

        state.reset()
        backend.save(state)

    logger.info(
        "order.placed",
        extra={
            "event": "order.placed",
            "order_id": order.id,
            "number": order.number,
            "owner": owner.key,
            "user_id": owner.user_id,
            "items": len(reserved),
            "total": str(order.total),
        },
    )
    transaction.on_commit(lambda: send_order_placed_email(order))
    return order
