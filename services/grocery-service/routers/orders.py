"""Orders API router."""
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth import CurrentUser, Operation, authorize, get_current_user
from database import get_db
from dependencies import get_order_service
from models import OrderStatus
from pagination import PageRequest, page_params
from schemas import ApiResponse, OrderCreateRequest, OrderResponse, PageResponse
from services.order_service import LineItem, OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])

OrderPage = ApiResponse[PageResponse[OrderResponse]]


@router.post("", response_model=ApiResponse[OrderResponse], status_code=201)
def place_order(
    request: OrderCreateRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
):
    """
    Place a cash-on-delivery order.

    Stock for every line is checked and decremented in one transaction; if any
    line cannot be fulfilled no stock changes and no order is stored.
    """
    authorize(user, Operation.PLACE_ORDER)
    items = [LineItem(product_id=item.product_id, quantity=item.quantity) for item in request.order_items]
    order = order_service.place_order(
        db,
        customer_id=user.id,
        delivery_address=request.delivery_address,
        contact_number=request.contact_number,
        order_notes=request.order_notes,
        items=items
    )
    return ApiResponse(success=True, message="Order placed successfully", data=order)


@router.get("/my-orders", response_model=OrderPage)
def get_my_orders(
    page: PageRequest = Depends(page_params("orderDate")),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
):
    authorize(user, Operation.VIEW_OWN_ORDERS)
    orders = order_service.get_customer_orders(db, user.id, page)
    return ApiResponse(success=True, message="Orders retrieved successfully", data=orders)


@router.get("/admin/all", response_model=OrderPage)
def get_all_orders(
    page: PageRequest = Depends(page_params("orderDate")),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
):
    authorize(user, Operation.VIEW_ALL_ORDERS)
    orders = order_service.get_all_orders(db, page)
    return ApiResponse(success=True, message="All orders retrieved successfully", data=orders)


@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
def get_order(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
):
    """Get one order. Customers see only their own."""
    authorize(user, Operation.VIEW_ORDER)
    order = order_service.get_order(db, order_id, user)
    return ApiResponse(success=True, message="Order retrieved successfully", data=order)


@router.put("/{order_id}/status", response_model=ApiResponse[OrderResponse])
def update_order_status(
    order_id: uuid.UUID,
    status: OrderStatus = Query(...),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
):
    authorize(user, Operation.UPDATE_ORDER_STATUS)
    order = order_service.update_status(db, order_id, status)
    return ApiResponse(success=True, message="Order status updated successfully", data=order)
