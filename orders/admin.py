from django.contrib import admin, messages

from common.errors import CommerceError

from .lifecycle import cancel_order
from .models import IdempotencyKey, Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "product_name", "seller", "quantity", "unit_price")
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "status", "payment_status", "user", "email", "total", "created_at")
    list_filter = ("status", "payment_status", "payment_method", "created_at")
    search_fields = ("number", "email", "ship_name", "tracking_number")
    date_hierarchy = "created_at"
    readonly_fields = ("subtotal", "tax", "shipping", "discount", "total", "created_at", "updated_at")
    inlines = [OrderItemInline]
    actions = ["action_cancel_orders"]

    @admin.action(description="Cancel order (restore stock, refund payment)")
    def action_cancel_orders(self, request, queryset):
        successes = 0
        failures = 0
        for order in queryset:
            try:
                cancel_order(order)
                successes += 1
            except CommerceError:
                failures += 1
        if successes:
            messages.success(request, f"Cancelled {successes} order(s).")
        if failures:
            messages.error(request, f"Could not cancel {failures} order(s).")


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "product", "seller", "quantity", "unit_price")
    list_filter = ("order",)
    search_fields = ("product_name", "order__number")


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
