"""Stock ledger: reserve and release product quantity on hand.

`reserve` is a single conditional UPDATE (decrement where stock >= qty), so two
concurrent checkouts can never both take the last units. `release` adds stock
back without an upper bound; over-releasing is not detected here.
"""

import logging

from catalog.models import Product
from common.errors import InsufficientStock, InvalidQuantity, NotFound
from django.db import transaction
from django.db.models import F

from .models import StockMovement

logger = logging.getLogger("pawmart.inventory")


def _check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity()
    return quantity


@transaction.atomic
def reserve(*, product_id, quantity: int, reference: str = "", reason: str = "checkout") -> None:
    """Atomically take `quantity` units from the product's stock.

    Raises InsufficientStock when fewer units are on hand, NotFound when the
    product no longer exists.
    """

    quantity = _check_quantity(quantity)
    updated = Product.objects.filter(id=product_id, stock__gte=quantity).update(stock=F("stock") - quantity)
    if updated != 1:
        current = Product.objects.filter(id=product_id).values_list("name", "stock").first()
        if current is None:
            raise NotFound("Product not found.")
        name, available = current
        raise InsufficientStock(
            f"Not enough stock for {name}. Only {available} available.",
            product_id=product_id,
            requested=quantity,
            available=available,
        )
    StockMovement.objects.create(
        product_id=product_id,
        product_ref=str(product_id),
        movement_type=StockMovement.TYPE_OUTBOUND,
        quantity=-quantity,
        reason=reason,
        reference=reference,
    )
    logger.info(
        "inventory.reserved",
        extra={"event": "inventory.reserved", "product_id": product_id, "quantity": quantity, "reference": reference},
    )


@transaction.atomic
def release(*, product_id, quantity: int, reference: str = "", reason: str = "release") -> bool:
    """Return `quantity` units to the product's stock.

    Returns False (and changes nothing) when the product has been deleted.
    """

    quantity = _check_quantity(quantity)
    updated = Product.objects.filter(id=product_id).update(stock=F("stock") + quantity)
    if updated != 1:
        logger.warning(
            "inventory.release_skipped",
            extra={"event": "inventory.release_skipped", "product_id": product_id, "quantity": quantity},
        )
        return False
    StockMovement.objects.create(
        product_id=product_id,
        product_ref=str(product_id),
        movement_type=StockMovement.TYPE_INBOUND,
        quantity=quantity,
        reason=reason,
        reference=reference,
    )
    logger.info(
        "inventory.released",
        extra={"event": "inventory.released", "product_id": product_id, "quantity": quantity, "reference": reference},
    )
    return True


def current_stock(product_id) -> int:
    """Re-read stock from the database (0 when the product is gone)."""

    stock = Product.objects.filter(id=product_id).values_list("stock", flat=True).first()
    return int(stock or 0)
