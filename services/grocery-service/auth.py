"""Request authentication and role-based authorization."""
import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from database import get_db
from exceptions import AccessDeniedError, AuthenticationError
from models import User, UserRole
from monitoring import access_denied_counter, auth_attempts_counter, auth_failures_counter
from security import TokenClaims, decode_access_token

logger = logging.getLogger(__name__)


class Operation(str, enum.Enum):
    """Protected operations gated by role."""
    PLACE_ORDER = "place_order"
    VIEW_OWN_ORDERS = "view_own_orders"
    VIEW_ORDER = "view_order"
    VIEW_ALL_ORDERS = "view_all_orders"
    UPDATE_ORDER_STATUS = "update_order_status"
    MANAGE_PRODUCTS = "manage_products"
    VIEW_LOW_STOCK = "view_low_stock"
    WRITE_REVIEW = "write_review"
    DELETE_ANY_REVIEW = "delete_any_review"
    MANAGE_PROFILE = "manage_profile"
    MANAGE_USERS = "manage_users"


POLICY: Dict[UserRole, FrozenSet[Operation]] = {
    UserRole.CUSTOMER: frozenset({
        Operation.PLACE_ORDER,
        Operation.VIEW_OWN_ORDERS,
        Operation.VIEW_ORDER,
        Operation.WRITE_REVIEW,
        Operation.MANAGE_PROFILE,
    }),
    UserRole.ADMIN: frozenset({
        Operation.VIEW_ORDER,
        Operation.VIEW_ALL_ORDERS,
        Operation.UPDATE_ORDER_STATUS,
        Operation.MANAGE_PRODUCTS,
        Operation.VIEW_LOW_STOCK,
        Operation.DELETE_ANY_REVIEW,
        Operation.MANAGE_PROFILE,
        Operation.MANAGE_USERS,
    }),
}


@dataclass(frozen=True)
class CurrentUser:
    """Identity resolved once per request and passed into service calls."""
    id: uuid.UUID
    email: str
    full_name: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an Authorization header value.

    Raises:
        AuthenticationError: If the header is missing or not a bearer header
    """
    if authorization is None:
        auth_failures_counter.add(1, {"reason": "missing_header"})
        logger.warning("Authentication failed: Missing authorization header")
        raise AuthenticationError("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        auth_failures_counter.add(1, {"reason": "invalid_format"})
        logger.warning("Authentication failed: Invalid authorization header format", extra={
            "auth_header": authorization[:20] + "..." if len(authorization) > 20 else authorization
        })
        raise AuthenticationError("Invalid authorization header format")

    return parts[1]


def verify_token(authorization: Optional[str] = Header(None)) -> TokenClaims:
    """
    Verify the bearer token on the request.

    Args:
        authorization: Authorization header value

    Returns:
        Verified token claims

    Raises:
        AuthenticationError: If token is invalid, expired or missing
    """
    auth_attempts_counter.add(1, {"type": "bearer_token"})

    token = extract_bearer_token(authorization)
    try:
        claims = decode_access_token(token)
    except AuthenticationError as e:
        auth_failures_counter.add(1, {"reason": "invalid_token"})
        logger.warning("Authentication failed: Invalid token", extra={
            "reason": e.message,
            "token_prefix": token[:8] + "..." if len(token) > 8 else token
        })
        raise

    logger.debug("Authentication successful", extra={"user_id": str(claims.user_id)})
    return claims


def get_current_user(
    claims: TokenClaims = Depends(verify_token),
    db: Session = Depends(get_db)
) -> CurrentUser:
    """Load the account behind a verified token."""
    user = db.get(User, claims.user_id)
    if user is None or user.email != claims.email:
        auth_failures_counter.add(1, {"reason": "unknown_subject"})
        logger.warning("Authentication failed: Token subject no longer exists", extra={
            "user_id": str(claims.user_id)
        })
        raise AuthenticationError("User not found")

    return CurrentUser(id=user.id, email=user.email, full_name=user.full_name, role=user.role)


def is_permitted(user: CurrentUser, operation: Operation) -> bool:
    return operation in POLICY.get(user.role, frozenset())


def authorize(user: CurrentUser, operation: Operation) -> None:
    """
    Check the role policy for an operation.

    Raises:
        AccessDeniedError: If the user's role does not permit the operation
    """
    if not is_permitted(user, operation):
        access_denied_counter.add(1, {"operation": operation.value, "role": user.role.value})
        logger.warning("Access denied", extra={
            "user_id": str(user.id),
            "role": user.role.value,
            "operation": operation.value
        })
        raise AccessDeniedError()
