"""Dependency injection for services."""
from services.auth_service import AuthService
from services.order_service import OrderService
from services.product_service import ProductService
from services.review_service import ReviewService
from services.user_service import UserService


def get_auth_service() -> AuthService:
    """Get auth service instance."""
    return AuthService()


def get_product_service() -> ProductService:
    """Get product service instance."""
    return ProductService()


def get_review_service() -> ReviewService:
    """Get review service instance."""
    return ReviewService()


def get_order_service() -> OrderService:
    """Get order service instance."""
    return OrderService()


def get_user_service() -> UserService:
    """Get user service instance."""
    return UserService()
