"""Reviews API router."""
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth import CurrentUser, Operation, authorize, get_current_user
from database import get_db
from dependencies import get_review_service
from schemas import ApiResponse, ReviewRequest, ReviewResponse
from services.review_service import ReviewService

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.put("/{review_id}", response_model=ApiResponse[ReviewResponse])
def update_review(
    review_id: uuid.UUID,
    request: ReviewRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    """Author: revise rating and comment."""
    authorize(user, Operation.WRITE_REVIEW)
    review = review_service.update_review(db, user, review_id, request.rating, request.comment)
    return ApiResponse(success=True, message="Review updated successfully", data=review)


@router.delete("/{review_id}", response_model=ApiResponse[None])
def delete_review(
    review_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    """Author or admin: remove a review."""
    review_service.delete_review(db, user, review_id)
    return ApiResponse(success=True, message="Review deleted successfully")
