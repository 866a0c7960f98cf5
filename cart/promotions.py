"""Promo codes accepted on carts."""

from dataclasses import dataclass
from decimal import Decimal

from common.pricing import ZERO, round2


@dataclass(frozen=True)
class Promotion:
    code: str
    percent_off: Decimal = ZERO
    free_shipping: bool = False

    def discount_for(self, subtotal: Decimal) -> Decimal:
        return round2(subtotal * self.percent_off)


PROMOTIONS = {
    "WELCOME10": Promotion(code="WELCOME10", percent_off=Decimal("0.10")),
    "FREESHIP": Promotion(code="FREESHIP", free_shipping=True),
}


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


def get_promotion(code) -> Promotion | None:
    return PROMOTIONS.get(normalize_code(code))
