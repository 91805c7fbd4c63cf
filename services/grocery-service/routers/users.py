"""Users API router: profile self-service and account administration."""
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth import CurrentUser, Operation, authorize, get_current_user
from database import get_db
from dependencies import get_user_service
from models import UserRole
from pagination import PageRequest, page_params
from schemas import ApiResponse, ChangePasswordRequest, PageResponse, UpdateProfileRequest, UserResponse
from services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])

UserPage = ApiResponse[PageResponse[UserResponse]]


@router.get("/profile", response_model=ApiResponse[UserResponse])
def get_profile(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    authorize(user, Operation.MANAGE_PROFILE)
    profile = user_service.get_profile(db, user)
    return ApiResponse(success=True, message="Profile retrieved successfully", data=profile)


@router.put("/profile", response_model=ApiResponse[UserResponse])
def update_profile(
    request: UpdateProfileRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    authorize(user, Operation.MANAGE_PROFILE)
    profile = user_service.update_profile(db, user, request)
    return ApiResponse(success=True, message="Profile updated successfully", data=profile)


@router.put("/change-password", response_model=ApiResponse[None])
def change_password(
    request: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Change the caller's password after checking the current one."""
    authorize(user, Operation.MANAGE_PROFILE)
    user_service.change_password(db, user, request)
    return ApiResponse(success=True, message="Password changed successfully")


@router.get("", response_model=UserPage)
def get_users(
    page: PageRequest = Depends(page_params("createdAt")),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    authorize(user, Operation.MANAGE_USERS)
    users = user_service.list_users(db, page)
    return ApiResponse(success=True, message="Users retrieved successfully", data=users)


@router.get("/search", response_model=UserPage)
def search_users(
    q: str = Query(..., min_length=1),
    page: PageRequest = Depends(page_params("fullName", "asc")),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Admin: search users by name or email."""
    authorize(user, Operation.MANAGE_USERS)
    users = user_service.search_users(db, q, page)
    return ApiResponse(success=True, message="Search results retrieved successfully", data=users)


@router.get("/role/{role}", response_model=UserPage)
def get_users_by_role(
    role: UserRole,
    page: PageRequest = Depends(page_params("createdAt")),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    authorize(user, Operation.MANAGE_USERS)
    users = user_service.list_users_by_role(db, role, page)
    return ApiResponse(success=True, message="Users retrieved successfully", data=users)


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    authorize(user, Operation.MANAGE_USERS)
    found = user_service.get_user(db, user_id)
    return ApiResponse(success=True, message="User retrieved successfully", data=found)


@router.put("/{user_id}/role", response_model=ApiResponse[UserResponse])
def update_user_role(
    user_id: uuid.UUID,
    role: UserRole = Query(...),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    authorize(user, Operation.MANAGE_USERS)
    updated = user_service.update_role(db, user_id, role)
    return ApiResponse(success=True, message="User role updated successfully", data=updated)


@router.delete("/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Admin: delete an account together with its orders and reviews."""
    authorize(user, Operation.MANAGE_USERS)
    user_service.delete_user(db, user_id)
    return ApiResponse(success=True, message="User deleted successfully")
