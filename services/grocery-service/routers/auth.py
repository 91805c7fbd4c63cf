"""Authentication API router."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from auth import extract_bearer_token
from exceptions import AuthenticationError
from database import get_db
from dependencies import get_auth_service
from schemas import ApiResponse, JwtResponse, LoginRequest, RegisterRequest
from services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])


@router.post("/login", response_model=ApiResponse[JwtResponse])
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Authenticate with email and password and return a bearer token."""
    token = auth_service.login(db, request.email, request.password)
    return ApiResponse(success=True, message="Login successful", data=token)


@router.post("/register", response_model=ApiResponse[JwtResponse], status_code=201)
def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Create a customer account and return a bearer token for it."""
    token = auth_service.register(db, request)
    return ApiResponse(success=True, message="User registered successfully", data=token)


@router.post("/refresh", response_model=ApiResponse[JwtResponse])
def refresh(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Re-issue a token with a fresh expiry from a valid or recently expired one."""
    token = auth_service.refresh(db, extract_bearer_token(authorization))
    return ApiResponse(success=True, message="Token refreshed successfully", data=token)


@router.post("/validate", response_model=ApiResponse[bool])
def validate(
    authorization: Optional[str] = Header(None),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Report whether the presented token is currently valid."""
    try:
        token = extract_bearer_token(authorization)
    except AuthenticationError:
        return ApiResponse(success=True, message="Token validation result", data=False)

    is_valid = auth_service.validate(token)
    return ApiResponse(success=True, message="Token validation result", data=is_valid)


@router.post("/logout", response_model=ApiResponse[None])
def logout():
    """
    Acknowledge logout.

    Tokens are stateless; the client discards its token. Nothing is revoked
    server-side.
    """
    logger.info("User logout requested")
    return ApiResponse(
        success=True,
        message="Logout successful. Please remove the token from client storage."
    )
