"""Cart URL routes (v1)."""

from django.urls import path

from .views import (
    CartAddItemView,
    CartCheckoutView,
    CartClearView,
    CartCountView,
    CartDetailView,
    CartItemView,
    CartPromoView,
    CartValidateView,
    MergeGuestCartView,
)

app_name = "cart"

urlpatterns = [
    path("", CartDetailView.as_view(), name="cart-detail"),
    path("count/", CartCountView.as_view(), name="cart-count"),
    path("items/", CartAddItemView.as_view(), name="cart-add-item"),
    path("items/<str:item_id>/", CartItemView.as_view(), name="cart-item"),
    path("clear/", CartClearView.as_view(), name="cart-clear"),
    path("promo/", CartPromoView.as_view(), name="cart-promo"),
    path("validate/", CartValidateView.as_view(), name="cart-validate"),
    path("merge-guest/", MergeGuestCartView.as_view(), name="cart-merge-guest"),
    path("checkout/", CartCheckoutView.as_view(), name="cart-checkout"),
]
