"""Domain errors shared by the cart, inventory and orders apps.

Services raise these; the API layer maps them to responses in `common.api`.
"""


class CommerceError(Exception):
    """Base class for recoverable, operation-scoped failures."""

    code = "error"
    default_detail = "Unable to complete the request."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def as_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code}


class NotFound(CommerceError):
    code = "not_found"
    default_detail = "Not found."


class InsufficientStock(CommerceError):
    code = "insufficient_stock"
    default_detail = "Not enough stock available."

    def __init__(self, detail: str | None = None, *, product_id=None, requested: int = 0, available: int = 0):
        super().__init__(detail)
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def as_dict(self) -> dict:
        return {
            **super().as_dict(),
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


class InvalidQuantity(CommerceError):
    code = "invalid_quantity"
    default_detail = "Quantity must be a positive integer."


class ValidationError(CommerceError):
    code = "validation_error"
    default_detail = "Invalid input."

    def __init__(self, detail: str | None = None, *, fields: list[str] | None = None):
        super().__init__(detail)
        self.fields = list(fields or [])

    def as_dict(self) -> dict:
        return {**super().as_dict(), "fields": self.fields}


class EmptyCart(CommerceError):
    code = "empty_cart"
    default_detail = "Your cart is empty."


class InvalidTransition(CommerceError):
    code = "invalid_transition"
    default_detail = "Invalid order status change."

    def __init__(self, detail: str | None = None, *, current: str = "", target: str = ""):
        super().__init__(detail or f"Cannot change order status from {current} to {target}.")
        self.current = current
        self.target = target

    def as_dict(self) -> dict:
        return {**super().as_dict(), "current": self.current, "target": self.target}


class Unauthorized(CommerceError):
    code = "unauthorized"
    default_detail = "You are not authorized to perform this action."
