"""Read-only product lookups used by the cart and checkout services."""

from typing import Optional

from .models import Product


def get_product(product_id) -> Optional[Product]:
    """Return an active product by id, or None if it is missing or delisted."""

    try:
        return Product.objects.get(id=product_id, is_active=True)
    except (Product.DoesNotExist, ValueError, TypeError):
        return None


def get_products(product_ids) -> dict:
    """Return active products keyed by id for the given ids."""

    return {p.id: p for p in Product.objects.filter(id__in=list(product_ids), is_active=True)}
