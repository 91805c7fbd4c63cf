"""Product catalog service."""
import logging
import uuid
from decimal import Decimal
from typing import List

from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from opentelemetry import trace

from exceptions import IllegalStateError, NotFoundError, ValidationError
from models import OrderItem, Product, Review
from monitoring import catalog_changes_counter, product_views_counter
from pagination import LIKE_ESCAPE, PageRequest, contains_pattern, paginate
from schemas import PageResponse, ProductRequest, ProductResponse
from services.review_service import rating_summaries, rating_summary

logger = logging.getLogger(__name__)

PRODUCT_SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "quantity": Product.quantity,
    "createdAt": Product.created_at,
}


class ProductService:
    """Service for browsing and managing the catalog."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def _to_responses(self, db: Session, products: List[Product]) -> List[ProductResponse]:
        summaries = rating_summaries(db, [p.id for p in products])
        return [
            ProductResponse.from_product(p, *summaries[p.id])
            for p in products
        ]

    def _to_response(self, db: Session, product: Product) -> ProductResponse:
        return ProductResponse.from_product(product, *rating_summary(db, product.id))

    def _get_product(self, db: Session, product_id: uuid.UUID) -> Product:
        with self.tracer.start_as_current_span("db.query.get_product") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")
            db_span.set_attribute("product.id", str(product_id))

            product = db.get(Product, product_id)
            db_span.set_attribute("db.rows_returned", 0 if product is None else 1)

        if product is None:
            raise NotFoundError.for_field("Product", "id", product_id)
        return product

    def _page(self, db: Session, query, page: PageRequest, listing: str) -> PageResponse[ProductResponse]:
        span = trace.get_current_span()
        span.set_attribute("catalog.listing", listing)
        product_views_counter.add(1, {"listing": listing})
        return paginate(query, page, lambda rows: self._to_responses(db, rows))

    def get_product(self, db: Session, product_id: uuid.UUID) -> ProductResponse:
        """Get a single product with its rating summary."""
        product = self._get_product(db, product_id)
        product_views_counter.add(1, {"listing": "detail"})
        return self._to_response(db, product)

    def list_products(self, db: Session, page: PageRequest) -> PageResponse[ProductResponse]:
        query = db.query(Product).order_by(page.order_by(PRODUCT_SORT_COLUMNS, "name"))
        return self._page(db, query, page, "all")

    def list_in_stock(self, db: Session, page: PageRequest) -> PageResponse[ProductResponse]:
        query = db.query(Product).filter(Product.quantity > 0).order_by(
            page.order_by(PRODUCT_SORT_COLUMNS, "name")
        )
        return self._page(db, query, page, "in_stock")

    def search(self, db: Session, term: str, page: PageRequest) -> PageResponse[ProductResponse]:
        """Case-insensitive match on name or description."""
        pattern = contains_pattern(term)
        query = db.query(Product).filter(
            or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                Product.description.ilike(pattern, escape=LIKE_ESCAPE)
            )
        ).order_by(page.order_by(PRODUCT_SORT_COLUMNS, "name"))
        return self._page(db, query, page, "search")

    def list_by_price_range(
        self,
        db: Session,
        min_price: Decimal,
        max_price: Decimal,
        page: PageRequest
    ) -> PageResponse[ProductResponse]:
        if min_price > max_price:
            raise ValidationError("Minimum price cannot be greater than maximum price")

        query = db.query(Product).filter(
            Product.price >= min_price,
            Product.price <= max_price
        ).order_by(page.order_by(PRODUCT_SORT_COLUMNS, "price"))
        return self._page(db, query, page, "price_range")

    def _with_rating_stats(self, db: Session):
        stats = db.query(
            Review.product_id.label("product_id"),
            func.avg(Review.rating).label("average_rating"),
            func.count(Review.id).label("review_count")
        ).group_by(Review.product_id).subquery()
        query = db.query(Product).outerjoin(stats, stats.c.product_id == Product.id)
        return query, stats

    def list_top_rated(self, db: Session, page: PageRequest) -> PageResponse[ProductResponse]:
        """Products ordered by average rating, then review count."""
        query, stats = self._with_rating_stats(db)
        query = query.order_by(
            func.coalesce(stats.c.average_rating, 0).desc(),
            func.coalesce(stats.c.review_count, 0).desc(),
            Product.name.asc()
        )
        return self._page(db, query, page, "top_rated")

    def list_most_reviewed(self, db: Session, page: PageRequest) -> PageResponse[ProductResponse]:
        """Products ordered by review count, then average rating."""
        query, stats = self._with_rating_stats(db)
        query = query.order_by(
            func.coalesce(stats.c.review_count, 0).desc(),
            func.coalesce(stats.c.average_rating, 0).desc(),
            Product.name.asc()
        )
        return self._page(db, query, page, "most_reviewed")

    def list_recent(self, db: Session, page: PageRequest) -> PageResponse[ProductResponse]:
        query = db.query(Product).order_by(Product.created_at.desc(), Product.name.asc())
        return self._page(db, query, page, "recent")

    def list_low_stock(self, db: Session, threshold: int) -> List[ProductResponse]:
        """Products whose stock is at or below the threshold, lowest first."""
        products = db.query(Product).filter(
            Product.quantity <= threshold
        ).order_by(Product.quantity.asc(), Product.name.asc()).all()
        return self._to_responses(db, products)

    def create_product(self, db: Session, request: ProductRequest) -> ProductResponse:
        logger.info("Creating new product", extra={"product_name": request.name})

        product = Product(
            name=request.name,
            description=request.description,
            price=request.price,
            quantity=request.quantity,
            image_url=request.image_url
        )
        db.add(product)
        db.commit()
        db.refresh(product)

        catalog_changes_counter.add(1, {"operation": "create"})
        logger.info("Product created successfully", extra={
            "product_id": str(product.id),
            "product_name": product.name
        })
        return self._to_response(db, product)

    def update_product(self, db: Session, product_id: uuid.UUID, request: ProductRequest) -> ProductResponse:
        """Replace a product's catalog fields. Past order totals are unaffected."""
        product = self._get_product(db, product_id)

        product.name = request.name
        product.description = request.description
        product.price = request.price
        product.quantity = request.quantity
        product.image_url = request.image_url
        db.commit()
        db.refresh(product)

        catalog_changes_counter.add(1, {"operation": "update"})
        logger.info("Product updated successfully", extra={
            "product_id": str(product_id),
            "product_name": product.name
        })
        return self._to_response(db, product)

    def update_stock(self, db: Session, product_id: uuid.UUID, quantity: int) -> ProductResponse:
        """Set a product's stock level."""
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative")

        product = self._get_product(db, product_id)
        old_quantity = product.quantity
        product.quantity = quantity
        db.commit()
        db.refresh(product)

        catalog_changes_counter.add(1, {"operation": "restock"})
        logger.info("Stock updated", extra={
            "product_id": str(product_id),
            "stock_before": old_quantity,
            "stock_after": quantity
        })
        return self._to_response(db, product)

    def delete_product(self, db: Session, product_id: uuid.UUID) -> None:
        """
        Delete a product and its reviews.

        Raises:
            IllegalStateError: If any order line item references the product
        """
        product = self._get_product(db, product_id)

        ordered = db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first()
        if ordered is not None:
            raise IllegalStateError(
                f"Product {product.name} appears in existing orders and cannot be deleted"
            )

        product_name = product.name
        db.delete(product)
        db.commit()

        catalog_changes_counter.add(1, {"operation": "delete"})
        logger.info("Product deleted successfully", extra={
            "product_id": str(product_id),
            "product_name": product_name
        })
