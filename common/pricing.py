"""Cart and order pricing.

A single canonical rule set is used everywhere a total is computed:

- tax is a flat rate on the subtotal (8.5% by default),
- shipping is free at or above the threshold (50.00), otherwise a flat fee (5.99),
- the discount is subtracted last and the total never drops below zero.

Rates come from settings so deployments can tune them without code changes.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.conf import settings

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def round2(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    shipping: Decimal = ZERO
    discount: Decimal = ZERO
    total: Decimal = ZERO

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping": self.shipping,
            "discount": self.discount,
            "total": self.total,
        }


def effective_price(product) -> Decimal:
    """Sale price when the product is on sale (and has one), else list price."""

    if getattr(product, "on_sale", False) and getattr(product, "sale_price", None) is not None:
        return round2(to_decimal(product.sale_price))
    return round2(to_decimal(product.price))


def compute_totals(
    lines: Iterable,
    discount=ZERO,
    *,
    free_shipping: bool = False,
    tax_rate=None,
    free_shipping_threshold=None,
    shipping_fee=None,
) -> Totals:
    """Compute the totals block for line items exposing `unit_price` and `quantity`."""

    if tax_rate is None:
        tax_rate = getattr(settings, "PRICING_TAX_RATE", "0.085")
    if free_shipping_threshold is None:
        free_shipping_threshold = getattr(settings, "PRICING_FREE_SHIPPING_THRESHOLD", "50.00")
    if shipping_fee is None:
        shipping_fee = getattr(settings, "PRICING_SHIPPING_FEE", "5.99")

    lines = list(lines)
    subtotal = ZERO
    for line in lines:
        subtotal += to_decimal(line.unit_price) * int(line.quantity)
    subtotal = round2(subtotal)

    tax = round2(subtotal * to_decimal(tax_rate))
    # An empty cart carries no shipping charge
    if not lines or free_shipping or subtotal >= to_decimal(free_shipping_threshold):
        shipping = ZERO
    else:
        shipping = round2(to_decimal(shipping_fee))
    discount = round2(max(to_decimal(discount), ZERO))

    total = round2(subtotal + tax + shipping - discount)
    if total < ZERO:
        total = ZERO
    return Totals(subtotal=subtotal, tax=tax, shipping=shipping, discount=discount, total=total)
