"""Catalog app models.

The product is owned by the catalog; the commerce core only reads it and
changes `stock` through `inventory.services`.
"""

from decimal import Decimal

from common.choices import ProductCategory
from common.pricing import effective_price
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """A sellable marketplace product listed by a seller."""

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=16, choices=ProductCategory.choices, default=ProductCategory.OTHER)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    sale_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    on_sale = models.BooleanField(default=False)
    stock = models.IntegerField(default=0)
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="products",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    main_image = models.URLField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(name="product_stock_non_negative", condition=models.Q(stock__gte=0)),
            models.CheckConstraint(name="product_price_non_negative", condition=models.Q(price__gte=0)),
            models.CheckConstraint(
                name="product_sale_price_non_negative",
                condition=models.Q(sale_price__gte=0) | models.Q(sale_price__isnull=True),
            ),
        ]
        indexes = [
            models.Index(fields=["seller", "is_active"], name="product_seller_active_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name

    @property
    def effective_price(self) -> Decimal:
        return effective_price(self)
