"""Products API router."""
import uuid
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth import CurrentUser, Operation, authorize, get_current_user
from database import get_db
from dependencies import get_product_service, get_review_service
from pagination import PageRequest, page_params
from schemas import ApiResponse, PageResponse, ProductRequest, ProductResponse, ReviewRequest, ReviewResponse
from services.product_service import ProductService
from services.review_service import ReviewService

router = APIRouter(prefix="/api/products", tags=["products"])

ProductPage = ApiResponse[PageResponse[ProductResponse]]


@router.get("", response_model=ProductPage)
def get_products(
    page: PageRequest = Depends(page_params("name", "asc")),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """List the catalog."""
    products = product_service.list_products(db, page)
    return ApiResponse(success=True, message="Products retrieved successfully", data=products)


@router.get("/in-stock", response_model=ProductPage)
def get_in_stock_products(
    page: PageRequest = Depends(page_params("name", "asc")),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    products = product_service.list_in_stock(db, page)
    return ApiResponse(success=True, message="In-stock products retrieved successfully", data=products)


@router.get("/search", response_model=ProductPage)
def search_products(
    q: str = Query(..., min_length=1),
    page: PageRequest = Depends(page_params("name", "asc")),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Search products by name or description."""
    products = product_service.search(db, q, page)
    return ApiResponse(success=True, message="Search results retrieved successfully", data=products)


@router.get("/price-range", response_model=ProductPage)
def get_products_by_price_range(
    min_price: Decimal = Query(..., alias="minPrice", ge=0),
    max_price: Decimal = Query(..., alias="maxPrice", ge=0),
    page: PageRequest = Depends(page_params("price", "asc")),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    products = product_service.list_by_price_range(db, min_price, max_price, page)
    return ApiResponse(success=True, message="Products retrieved successfully", data=products)


@router.get("/top-rated", response_model=ProductPage)
def get_top_rated_products(
    page: PageRequest = Depends(page_params("")),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    products = product_service.list_top_rated(db, page)
    return ApiResponse(success=True, message="Top-rated products retrieved successfully", data=products)


@router.get("/most-reviewed", response_model=ProductPage)
def get_most_reviewed_products(
    page: PageRequest = Depends(page_params("")),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    products = product_service.list_most_reviewed(db, page)
    return ApiResponse(success=True, message="Most reviewed products retrieved successfully", data=products)


@router.get("/recent", response_model=ProductPage)
def get_recent_products(
    page: PageRequest = Depends(page_params("")),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    products = product_service.list_recent(db, page)
    return ApiResponse(success=True, message="Recent products retrieved successfully", data=products)


@router.get("/low-stock", response_model=ApiResponse[List[ProductResponse]])
def get_low_stock_products(
    threshold: int = Query(10, ge=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    product_service: ProductService = Depends(get_product_service)
):
    """Admin: products at or below the stock threshold."""
    authorize(user, Operation.VIEW_LOW_STOCK)
    products = product_service.list_low_stock(db, threshold)
    return ApiResponse(success=True, message="Low stock products retrieved successfully", data=products)


@router.get("/{product_id}", response_model=ApiResponse[ProductResponse])
def get_product(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Get product details including average rating and review count."""
    product = product_service.get_product(db, product_id)
    return ApiResponse(success=True, message="Product retrieved successfully", data=product)


@router.post("", response_model=ApiResponse[ProductResponse], status_code=201)
def create_product(
    request: ProductRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    product_service: ProductService = Depends(get_product_service)
):
    authorize(user, Operation.MANAGE_PRODUCTS)
    product = product_service.create_product(db, request)
    return ApiResponse(success=True, message="Product created successfully", data=product)


@router.put("/{product_id}", response_model=ApiResponse[ProductResponse])
def update_product(
    product_id: uuid.UUID,
    request: ProductRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    product_service: ProductService = Depends(get_product_service)
):
    authorize(user, Operation.MANAGE_PRODUCTS)
    product = product_service.update_product(db, product_id, request)
    return ApiResponse(success=True, message="Product updated successfully", data=product)


@router.put("/{product_id}/stock", response_model=ApiResponse[ProductResponse])
def update_product_stock(
    product_id: uuid.UUID,
    quantity: int = Query(...),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    product_service: ProductService = Depends(get_product_service)
):
    authorize(user, Operation.MANAGE_PRODUCTS)
    product = product_service.update_stock(db, product_id, quantity)
    return ApiResponse(success=True, message="Product stock updated successfully", data=product)


@router.delete("/{product_id}", response_model=ApiResponse[None])
def delete_product(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    product_service: ProductService = Depends(get_product_service)
):
    authorize(user, Operation.MANAGE_PRODUCTS)
    product_service.delete_product(db, product_id)
    return ApiResponse(success=True, message="Product deleted successfully")


# Reviews nested under a product

@router.get("/{product_id}/reviews", response_model=ApiResponse[PageResponse[ReviewResponse]])
def get_product_reviews(
    product_id: uuid.UUID,
    page: PageRequest = Depends(page_params("createdAt")),
    db: Session = Depends(get_db),
    review_service: ReviewService = Depends(get_review_service)
):
    reviews = review_service.list_product_reviews(db, product_id, page)
    return ApiResponse(success=True, message="Reviews retrieved successfully", data=reviews)


@router.post("/{product_id}/reviews", response_model=ApiResponse[ReviewResponse], status_code=201)
def create_review(
    product_id: uuid.UUID,
    request: ReviewRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    """Customer: review a product once. Use PUT /api/reviews/{id} to revise."""
    authorize(user, Operation.WRITE_REVIEW)
    review = review_service.create_review(db, user, product_id, request.rating, request.comment)
    return ApiResponse(success=True, message="Review created successfully", data=review)
