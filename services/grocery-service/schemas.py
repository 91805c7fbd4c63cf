"""Pydantic schemas for request/response validation."""
import math
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from models import Order, OrderItem, OrderStatus, PaymentMethod, Product, Review, UserRole

T = TypeVar("T")

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    return value


class CamelModel(BaseModel):
    """Base schema serialized with camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    """Envelope wrapping every API payload."""
    success: bool
    message: str
    data: Optional[T] = None


class PageResponse(CamelModel, Generic[T]):
    """One page of a sorted listing."""
    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    last: bool

    @classmethod
    def build(cls, content: List[T], page: int, size: int, total: int) -> "PageResponse[T]":
        total_pages = math.ceil(total / size) if size else 0
        return cls(
            content=content,
            page=page,
            size=size,
            total_elements=total,
            total_pages=total_pages,
            last=page >= total_pages - 1
        )


# Authentication

class LoginRequest(CamelModel):
    """Schema for login request."""
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(CamelModel):
    """Schema for registration request."""
    full_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=64)
    confirm_password: str
    address: Optional[str] = Field(default=None, max_length=500)
    contact_number: Optional[str] = Field(default=None, pattern=r"^\+?[0-9 ()-]{7,20}$")

    password_fits_bcrypt = field_validator("password")(_check_password_bytes)


class JwtResponse(CamelModel):
    """Schema for issued token payload."""
    token: str
    token_type: str = Field(default="Bearer", alias="type")
    id: uuid.UUID
    full_name: str
    email: str
    role: UserRole
    expires_in: int


# Users

class UserResponse(CamelModel):
    """Schema for user response."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: str
    email: str
    address: Optional[str] = None
    contact_number: Optional[str] = None
    role: UserRole
    created_at: datetime
    updated_at: Optional[datetime] = None


class UpdateProfileRequest(CamelModel):
    """Schema for profile update request."""
    full_name: str = Field(min_length=2, max_length=100)
    address: Optional[str] = Field(default=None, max_length=500)
    contact_number: Optional[str] = Field(default=None, pattern=r"^\+?[0-9 ()-]{7,20}$")


class ChangePasswordRequest(CamelModel):
    """Schema for password change request."""
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=64)
    confirm_password: str

    new_password_fits_bcrypt = field_validator("new_password")(_check_password_bytes)


# Products

class ProductRequest(CamelModel):
    """Schema for creating or updating a product."""
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(ge=0)
    image_url: Optional[str] = Field(default=None, max_length=500)


class ProductResponse(CamelModel):
    """Schema for product response."""
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    price: float
    quantity: int
    image_url: Optional[str] = None
    in_stock: bool
    average_rating: float
    review_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_product(cls, product: Product, average_rating: float, review_count: int) -> "ProductResponse":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=float(product.price),
            quantity=product.quantity,
            image_url=product.image_url,
            in_stock=product.quantity > 0,
            average_rating=average_rating,
            review_count=review_count,
            created_at=product.created_at,
            updated_at=product.updated_at
        )


# Reviews

class ReviewRequest(CamelModel):
    """Schema for creating or updating a review."""
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=1000)


class ReviewResponse(CamelModel):
    """Schema for review response."""
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    user_id: uuid.UUID
    user_name: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_review(cls, review: Review) -> "ReviewResponse":
        return cls(
            id=review.id,
            product_id=review.product_id,
            product_name=review.product.name,
            user_id=review.user_id,
            user_name=review.user.full_name,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
            updated_at=review.updated_at
        )


# Orders

class OrderItemRequest(CamelModel):
    """Schema for one line item of an order request."""
    product_id: uuid.UUID
    quantity: int = Field(ge=1)


class OrderCreateRequest(CamelModel):
    """Schema for order placement request."""
    order_items: List[OrderItemRequest] = Field(min_length=1)
    delivery_address: str = Field(min_length=1, max_length=500)
    contact_number: str = Field(pattern=r"^\+?[0-9 ()-]{7,20}$")
    order_notes: Optional[str] = Field(default=None, max_length=1000)


class OrderItemResponse(CamelModel):
    """Schema for order line item in response."""
    id: int
    product_id: uuid.UUID
    product_name: str
    product_image: Optional[str] = None
    quantity: int
    price: float
    subtotal: float

    @classmethod
    def from_item(cls, item: OrderItem) -> "OrderItemResponse":
        return cls(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product.name,
            product_image=item.product.image_url,
            quantity=item.quantity,
            price=float(item.price),
            subtotal=float(item.price * item.quantity)
        )


class OrderResponse(CamelModel):
    """Schema for order response."""
    id: uuid.UUID
    customer_id: uuid.UUID
    customer_name: str
    customer_email: str
    order_date: datetime
    status: OrderStatus
    payment_method: PaymentMethod
    total_amount: float
    delivery_address: str
    contact_number: str
    order_notes: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    order_items: List[OrderItemResponse]

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            customer_id=order.user_id,
            customer_name=order.user.full_name,
            customer_email=order.user.email,
            order_date=order.order_date,
            status=order.status,
            payment_method=order.payment_method,
            total_amount=float(order.total_amount),
            delivery_address=order.delivery_address,
            contact_number=order.contact_number,
            order_notes=order.order_notes,
            estimated_delivery_date=order.estimated_delivery_date,
            actual_delivery_date=order.actual_delivery_date,
            order_items=[OrderItemResponse.from_item(item) for item in order.items]
        )


