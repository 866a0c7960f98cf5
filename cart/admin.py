"""Admin registration for cart models.

Provides admin interfaces for account `Cart` and `CartItem` rows, with inline
items on the cart page for easier support. Guest carts live in the cache and
are not listed here.
"""

from django.contrib import admin, messages

from common.errors import CommerceError

from .models import Cart, CartItem
from .owners import CartOwner
from .services import clear_cart, validate_cart


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ("product", "name", "quantity", "unit_price", "created_at", "updated_at")
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("product",)


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "promo_code", "total", "updated_at", "created_at")
    search_fields = ("user__username", "user__email", "promo_code")
    ordering = ("-updated_at",)
    readonly_fields = ("subtotal", "tax", "shipping", "discount", "total", "created_at", "updated_at")
    inlines = [CartItemInline]
    autocomplete_fields = ("user",)
    list_select_related = ("user",)

    @admin.action(description="Clear cart")
    def action_clear_cart(self, request, queryset):
        successes = 0
        failures = 0
        for cart in queryset:
            try:
                clear_cart(owner=CartOwner.for_user(cart.user_id))
                successes += 1
            except CommerceError:
                failures += 1
        if successes:
            messages.success(request, f"Cleared {successes} cart(s).")
        if failures:
            messages.error(request, f"Failed to clear {failures} cart(s).")

    @admin.action(description="Validate cart against current stock")
    def action_validate_cart(self, request, queryset):
        removed = 0
        adjusted = 0
        for cart in queryset:
            report = validate_cart(owner=CartOwner.for_user(cart.user_id))
            removed += len(report.removed)
            adjusted += len(report.adjusted)
        messages.info(request, f"Removed {removed} line(s), adjusted {adjusted} line(s).")

    actions = ["action_clear_cart", "action_validate_cart"]


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "product", "quantity", "unit_price", "updated_at")
    search_fields = ("name", "cart__user__email")
    ordering = ("id",)
    readonly_fields = ("line_id", "created_at", "updated_at")
    raw_id_fields = ("cart", "product")
