"""Login, registration and token refresh."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import JWT_EXPIRATION_SECONDS
from exceptions import AuthenticationError, ValidationError
from models import User, UserRole
from monitoring import auth_attempts_counter, auth_failures_counter
from schemas import JwtResponse, RegisterRequest
from security import (
    create_access_token,
    decode_refreshable_token,
    hash_password,
    is_token_valid,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def _token_response(user: User) -> JwtResponse:
    return JwtResponse(
        token=create_access_token(user.email, user.id, user.role),
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        role=user.role,
        expires_in=JWT_EXPIRATION_SECONDS
    )


class AuthService:
    """Service issuing and refreshing bearer tokens."""

    def login(self, db: Session, email: str, password: str) -> JwtResponse:
        """
        Authenticate credentials and issue a token.

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong
        """
        email = email.lower()
        auth_attempts_counter.add(1, {"type": "login"})

        user = db.query(User).filter(User.email == email).first()
        if user is None:
            auth_failures_counter.add(1, {"reason": "invalid_username"})
            logger.warning("Login failed: Unknown email", extra={"email": email})
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not verify_password(password, user.password_hash):
            auth_failures_counter.add(1, {"reason": "invalid_password"})
            logger.warning("Login failed: Invalid password", extra={"email": email})
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("User logged in successfully", extra={
            "email": email,
            "user_id": str(user.id)
        })
        return _token_response(user)

    def register(self, db: Session, request: RegisterRequest) -> JwtResponse:
        """
        Create a customer account and issue a token for it.

        Raises:
            ValidationError: If the passwords differ or the email is taken
        """
        email = request.email.lower()
        logger.info("Registering new user", extra={"email": email})

        if request.password != request.confirm_password:
            raise ValidationError("Passwords do not match")

        if db.query(User.id).filter(User.email == email).first() is not None:
            raise ValidationError("Email is already in use")

        user = User(
            email=email,
            password_hash=hash_password(request.password),
            full_name=request.full_name,
            address=request.address,
            contact_number=request.contact_number,
            role=UserRole.CUSTOMER
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError("Email is already in use")
        db.refresh(user)

        logger.info("User registered successfully", extra={
            "email": email,
            "user_id": str(user.id)
        })
        return _token_response(user)

    def refresh(self, db: Session, token: str) -> JwtResponse:
        """
        Re-issue a token with a fresh expiry.

        Accepts tokens that are still valid or expired within the grace period.

        Raises:
            AuthenticationError: If the token cannot be refreshed or its user is gone
        """
        claims = decode_refreshable_token(token)

        user = db.get(User, claims.user_id)
        if user is None or user.email != claims.email:
            raise AuthenticationError("User not found")

        logger.info("Token refreshed", extra={"user_id": str(user.id)})
        return _token_response(user)

    def validate(self, token: str) -> bool:
        return is_token_valid(token)
