"""Password hashing and bearer token signing."""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from config import (
    BCRYPT_ROUNDS,
    JWT_ALGORITHM,
    JWT_EXPIRATION_SECONDS,
    JWT_REFRESH_GRACE_SECONDS,
    JWT_SECRET,
)
from exceptions import AuthenticationError, ValidationError
from models import UserRole
from schemas import MAX_PASSWORD_BYTES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified bearer token."""
    email: str
    user_id: uuid.UUID
    role: UserRole
    expires_at: datetime


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is malformed
        logger.warning("Password check against malformed hash")
        return False


def create_access_token(email: str, user_id: uuid.UUID, role: UserRole, now: Optional[datetime] = None) -> str:
    """
    Issue a signed, time-limited bearer token.

    Args:
        email: Token subject
        user_id: User identifier
        role: User role
        now: Issue time (defaults to current UTC time)

    Returns:
        Encoded JWT
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": email,
        "uid": str(user_id),
        "role": role.value,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=JWT_EXPIRATION_SECONDS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, leeway_seconds: int = 0) -> TokenClaims:
    """
    Verify a token's signature and expiry and return its claims.

    Args:
        token: Encoded JWT
        leeway_seconds: Seconds past expiry still accepted

    Returns:
        Verified token claims

    Raises:
        AuthenticationError: If the token is expired, tampered with or malformed
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            leeway=timedelta(seconds=leeway_seconds),
            options={"require": ["sub", "uid", "role", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Rejected invalid token", extra={"reason": str(e)})
        raise AuthenticationError("Invalid token")

    try:
        return TokenClaims(
            email=payload["sub"],
            user_id=uuid.UUID(payload["uid"]),
            role=UserRole(payload["role"]),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except ValueError:
        raise AuthenticationError("Invalid token payload")


def decode_refreshable_token(token: str) -> TokenClaims:
    """Decode a token that is valid or expired within the refresh grace period."""
    return decode_access_token(token, leeway_seconds=JWT_REFRESH_GRACE_SECONDS)


def is_token_valid(token: str) -> bool:
    """Return True when the token verifies and has not expired."""
    try:
        decode_access_token(token)
    except AuthenticationError:
        return False
    return True

