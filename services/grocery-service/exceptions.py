"""Typed service errors and their HTTP status codes."""
from typing import Any, Optional


class GroceryError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, data: Any = None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)


class NotFoundError(GroceryError):
    """Entity lookup miss."""

    status_code = 404
    default_message = "Resource not found"

    @classmethod
    def for_field(cls, resource: str, field: str, value: Any) -> "NotFoundError":
        return cls(f"{resource} not found with {field}: {value}")


class ValidationError(GroceryError):
    """Malformed input or a violated business rule."""

    status_code = 400
    default_message = "Bad request"


class OutOfStockError(ValidationError):
    """Requested quantity exceeds the product's stock."""

    def __init__(self, product_name: str, available: int, requested: int):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product: {product_name}. "
            f"Available: {available}, Requested: {requested}"
        )


class AuthenticationError(GroceryError):
    """Bad credentials or an invalid or expired token."""

    status_code = 401
    default_message = "Authentication failed"


class AccessDeniedError(GroceryError):
    """Authenticated identity lacks the required role."""

    status_code = 403
    default_message = "Access denied. Insufficient privileges."


class IllegalStateError(GroceryError):
    """Operation is not allowed in the entity's current state."""

    status_code = 409
    default_message = "Operation not allowed in the current state"


class ConflictError(IllegalStateError):
    """Uniqueness conflict with an existing entity."""

    default_message = "Resource already exists"
