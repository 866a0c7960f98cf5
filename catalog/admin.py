"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "price", "on_sale", "sale_price", "stock", "seller", "is_active")
    search_fields = ("name", "description")
    list_filter = ("category", "on_sale", "is_active")
    raw_id_fields = ("seller",)
    # Stock changes go through inventory movements
    readonly_fields = ("stock", "created_at", "updated_at")
