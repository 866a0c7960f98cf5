"""Shared enumerations and choices used across apps."""

from django.db import models


class UserRole(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    SELLER = "seller", "Seller"
    VET = "vet", "Veterinarian"
    ADMIN = "admin", "Admin"
    CO_ADMIN = "co_admin", "Co-admin"


class MovementType(models.TextChoices):
    INBOUND = "in", "Inbound"
    OUTBOUND = "out", "Outbound"


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders."""

    PLACED = "placed", "Placed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PaymentMethod(models.TextChoices):
    CREDIT_CARD = "credit_card", "Credit card"
    PAYPAL = "paypal", "PayPal"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"


class ProductCategory(models.TextChoices):
    FOOD = "food", "Food"
    TOYS = "toys", "Toys"
    ACCESSORIES = "accessories", "Accessories"
    HEALTH = "health", "Health"
    GROOMING = "grooming", "Grooming"
    BEDDING = "bedding", "Bedding"
    CLOTHING = "clothing", "Clothing"
    OTHER = "other", "Other"
