"""Product review service and rating aggregation."""
import logging
import uuid
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from opentelemetry import trace

from auth import CurrentUser, Operation, is_permitted
from exceptions import AccessDeniedError, ConflictError, NotFoundError
from models import Product, Review
from monitoring import reviews_created_counter
from pagination import PageRequest, paginate
from schemas import PageResponse, ReviewResponse

logger = logging.getLogger(__name__)

RatingSummary = Tuple[float, int]

REVIEW_SORT_COLUMNS = {
    "createdAt": Review.created_at,
    "rating": Review.rating,
}


def rating_summary(db: Session, product_id: uuid.UUID) -> RatingSummary:
    """
    Compute a product's average rating and review count from its reviews.

    Returns:
        (average rating rounded to two places, review count); (0.0, 0) when unreviewed
    """
    average, count = db.query(
        func.avg(Review.rating),
        func.count(Review.id)
    ).filter(Review.product_id == product_id).one()
    return (round(float(average), 2) if average is not None else 0.0, count)


def rating_summaries(db: Session, product_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, RatingSummary]:
    """Compute rating summaries for many products in one query."""
    ids = list(product_ids)
    if not ids:
        return {}

    rows = db.query(
        Review.product_id,
        func.avg(Review.rating),
        func.count(Review.id)
    ).filter(Review.product_id.in_(ids)).group_by(Review.product_id).all()

    summaries = {product_id: (0.0, 0) for product_id in ids}
    for product_id, average, count in rows:
        summaries[product_id] = (round(float(average), 2), count)
    return summaries


class ReviewService:
    """Service for managing product reviews."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def _get_review(self, db: Session, review_id: uuid.UUID) -> Review:
        review = db.get(Review, review_id)
        if review is None:
            raise NotFoundError.for_field("Review", "id", review_id)
        return review

    def create_review(
        self,
        db: Session,
        user: CurrentUser,
        product_id: uuid.UUID,
        rating: int,
        comment: Optional[str]
    ) -> ReviewResponse:
        """
        Create the user's single review of a product.

        Raises:
            NotFoundError: If the product does not exist
            ConflictError: If the user already reviewed the product
        """
        if db.get(Product, product_id) is None:
            raise NotFoundError.for_field("Product", "id", product_id)

        existing = db.query(Review).filter(
            Review.product_id == product_id,
            Review.user_id == user.id
        ).first()
        if existing is not None:
            raise ConflictError("You have already reviewed this product")

        review = Review(product_id=product_id, user_id=user.id, rating=rating, comment=comment)
        db.add(review)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race against a concurrent review by the same user
            db.rollback()
            raise ConflictError("You have already reviewed this product")
        db.refresh(review)

        reviews_created_counter.add(1, {"rating": str(rating)})
        logger.info("Review created", extra={
            "review_id": str(review.id),
            "product_id": str(product_id),
            "user_id": str(user.id),
            "rating": rating
        })
        return ReviewResponse.from_review(review)

    def update_review(
        self,
        db: Session,
        user: CurrentUser,
        review_id: uuid.UUID,
        rating: int,
        comment: Optional[str]
    ) -> ReviewResponse:
        """Revise a review in place; only its author may do so."""
        review = self._get_review(db, review_id)
        if review.user_id != user.id:
            raise AccessDeniedError("You can only edit your own reviews")

        review.rating = rating
        review.comment = comment
        db.commit()
        db.refresh(review)

        logger.info("Review updated", extra={"review_id": str(review_id), "rating": rating})
        return ReviewResponse.from_review(review)

    def delete_review(self, db: Session, user: CurrentUser, review_id: uuid.UUID) -> None:
        """Delete a review; allowed for its author or an administrator."""
        review = self._get_review(db, review_id)
        if review.user_id != user.id and not is_permitted(user, Operation.DELETE_ANY_REVIEW):
            raise AccessDeniedError("You can only delete your own reviews")

        db.delete(review)
        db.commit()

        logger.info("Review deleted", extra={
            "review_id": str(review_id),
            "deleted_by": str(user.id)
        })

    def list_product_reviews(
        self,
        db: Session,
        product_id: uuid.UUID,
        page: PageRequest
    ) -> PageResponse[ReviewResponse]:
        """List a product's reviews."""
        if db.get(Product, product_id) is None:
            raise NotFoundError.for_field("Product", "id", product_id)

        with self.tracer.start_as_current_span("db.query.get_product_reviews") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "reviews")
            db_span.set_attribute("product.id", str(product_id))

            query = db.query(Review).filter(Review.product_id == product_id).order_by(
                page.order_by(REVIEW_SORT_COLUMNS, "createdAt")
            )
            return paginate(query, page, lambda rows: [ReviewResponse.from_review(r) for r in rows])
