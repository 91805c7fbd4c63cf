"""User account service."""
import logging
import uuid

from sqlalchemy import or_
from sqlalchemy.orm import Session

from auth import CurrentUser
from exceptions import NotFoundError, ValidationError
from models import User, UserRole
from pagination import LIKE_ESCAPE, PageRequest, contains_pattern, paginate
from schemas import ChangePasswordRequest, PageResponse, UpdateProfileRequest, UserResponse
from security import hash_password, verify_password

logger = logging.getLogger(__name__)

USER_SORT_COLUMNS = {
    "fullName": User.full_name,
    "email": User.email,
    "role": User.role,
    "createdAt": User.created_at,
}


def _to_responses(users):
    return [UserResponse.model_validate(user) for user in users]


class UserService:
    """Service for profile self-service and account administration."""

    def _get_user(self, db: Session, user_id: uuid.UUID) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError.for_field("User", "id", user_id)
        return user

    def get_profile(self, db: Session, current: CurrentUser) -> UserResponse:
        return UserResponse.model_validate(self._get_user(db, current.id))

    def update_profile(self, db: Session, current: CurrentUser, request: UpdateProfileRequest) -> UserResponse:
        user = self._get_user(db, current.id)
        logger.info("Updating profile", extra={"email": user.email})

        user.full_name = request.full_name
        user.address = request.address
        user.contact_number = request.contact_number
        db.commit()
        db.refresh(user)

        logger.info("Profile updated successfully", extra={"email": user.email})
        return UserResponse.model_validate(user)

    def change_password(self, db: Session, current: CurrentUser, request: ChangePasswordRequest) -> None:
        """
        Change the caller's password.

        Raises:
            ValidationError: If the new passwords differ or the current password is wrong
        """
        user = self._get_user(db, current.id)
        logger.info("Changing password", extra={"email": user.email})

        if request.new_password != request.confirm_password:
            raise ValidationError("New passwords do not match")

        if not verify_password(request.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        user.password_hash = hash_password(request.new_password)
        db.commit()

        logger.info("Password changed successfully", extra={"email": user.email})

    def get_user(self, db: Session, user_id: uuid.UUID) -> UserResponse:
        return UserResponse.model_validate(self._get_user(db, user_id))

    def list_users(self, db: Session, page: PageRequest) -> PageResponse[UserResponse]:
        query = db.query(User).order_by(page.order_by(USER_SORT_COLUMNS, "createdAt"))
        return paginate(query, page, _to_responses)

    def search_users(self, db: Session, term: str, page: PageRequest) -> PageResponse[UserResponse]:
        """Case-insensitive match on full name or email."""
        pattern = contains_pattern(term)
        query = db.query(User).filter(
            or_(
                User.full_name.ilike(pattern, escape=LIKE_ESCAPE),
                User.email.ilike(pattern, escape=LIKE_ESCAPE)
            )
        ).order_by(page.order_by(USER_SORT_COLUMNS, "createdAt"))
        return paginate(query, page, _to_responses)

    def list_users_by_role(self, db: Session, role: UserRole, page: PageRequest) -> PageResponse[UserResponse]:
        query = db.query(User).filter(User.role == role).order_by(
            page.order_by(USER_SORT_COLUMNS, "createdAt")
        )
        return paginate(query, page, _to_responses)

    def update_role(self, db: Session, user_id: uuid.UUID, role: UserRole) -> UserResponse:
        user = self._get_user(db, user_id)
        old_role = user.role

        user.role = role
        db.commit()
        db.refresh(user)

        logger.info("Role updated", extra={
            "email": user.email,
            "from_role": old_role.value,
            "to_role": role.value
        })
        return UserResponse.model_validate(user)

    def delete_user(self, db: Session, user_id: uuid.UUID) -> None:
        """Delete an account together with its orders, order items and reviews."""
        user = self._get_user(db, user_id)
        email = user.email

        db.delete(user)
        db.commit()

        logger.info("User deleted", extra={"email": email, "user_id": str(user_id)})
