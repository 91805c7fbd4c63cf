"""Order placement and lifecycle service."""
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session
from opentelemetry import trace

from auth import CurrentUser
from config import ESTIMATED_DELIVERY_DAYS
from exceptions import AccessDeniedError, NotFoundError, OutOfStockError, ValidationError
from models import Order, OrderItem, OrderStatus, PaymentMethod, Product, User, utcnow
from monitoring import (
    order_amount_histogram,
    order_items_histogram,
    order_status_transitions_counter,
    orders_placed_counter,
    orders_rejected_out_of_stock_counter,
)
from order_status import check_transition
from pagination import PageRequest, paginate
from schemas import OrderResponse, PageResponse

logger = logging.getLogger(__name__)

ORDER_SORT_COLUMNS = {
    "orderDate": Order.order_date,
    "totalAmount": Order.total_amount,
    "status": Order.status,
}


@dataclass(frozen=True)
class LineItem:
    """One requested (product, quantity) pairing."""
    product_id: uuid.UUID
    quantity: int


class OrderService:
    """Service for placing and managing orders."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def place_order(
        self,
        db: Session,
        customer_id: uuid.UUID,
        delivery_address: str,
        contact_number: str,
        order_notes: Optional[str],
        items: Sequence[LineItem]
    ) -> OrderResponse:
        """
        Place an order, decrementing stock for every line item.

        Stock checks, decrements and the order insert share one transaction:
        if any line item fails, no decrement from this request is kept.
        Concurrent placements against the same product rely on the
        database's isolation level; there is no row versioning on Product.

        Args:
            db: Database session
            customer_id: Ordering customer
            delivery_address: Delivery address
            contact_number: Contact number for the delivery
            order_notes: Optional free-text notes
            items: Requested line items, processed in order

        Returns:
            The persisted order

        Raises:
            NotFoundError: If the customer or a product does not exist
            ValidationError: If items is empty or a quantity is below 1
            OutOfStockError: If a line item asks for more than the current stock
        """
        span = trace.get_current_span()
        span.set_attribute("order.line_items", len(items))

        customer = db.get(User, customer_id)
        if customer is None:
            raise NotFoundError.for_field("Customer", "id", customer_id)

        if not items:
            raise ValidationError("Order must contain at least one item")
        for item in items:
            if item.quantity < 1:
                raise ValidationError(f"Quantity must be at least 1 for product: {item.product_id}")

        now = utcnow()
        order = Order(
            user_id=customer.id,
            order_date=now,
            status=OrderStatus.PENDING,
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
            delivery_address=delivery_address,
            contact_number=contact_number,
            order_notes=order_notes,
            estimated_delivery_date=now + timedelta(days=ESTIMATED_DELIVERY_DAYS)
        )

        try:
            with self.tracer.start_as_current_span("db.transaction.place_order") as db_span:
                db_span.set_attribute("db.operation", "INSERT")
                db_span.set_attribute("db.table", "orders")
                db_span.set_attribute("user.id", str(customer_id))

                total_amount = Decimal("0.00")
                for item in items:
                    product = self._reserve_stock(db, item)

                    order.items.append(OrderItem(
                        product=product,
                        quantity=item.quantity,
                        price=product.price
                    ))
                    total_amount += product.price * item.quantity

                order.total_amount = total_amount
                db.add(order)
                db.commit()

                db_span.set_attribute("order.id", str(order.id))
                db_span.set_attribute("order.total_amount", float(total_amount))
        except Exception as e:
            db.rollback()
            if isinstance(e, OutOfStockError):
                orders_rejected_out_of_stock_counter.add(1, {"product_name": e.product_name})
            logger.warning("Order placement rolled back", extra={
                "user_id": str(customer_id),
                "error": str(e)
            })
            raise

        db.refresh(order)

        orders_placed_counter.add(1, {"payment_method": order.payment_method.value})
        order_amount_histogram.record(float(order.total_amount), {"payment_method": order.payment_method.value})
        order_items_histogram.record(len(items))

        logger.info("Order placed", extra={
            "user_id": str(customer_id),
            "order_id": str(order.id),
            "amount": float(order.total_amount),
            "item_count": len(items)
        })
        return OrderResponse.from_order(order)

    def _reserve_stock(self, db: Session, item: LineItem) -> Product:
        """Check and decrement one line item's stock inside the open transaction."""
        with self.tracer.start_as_current_span("db.query.update_product_stock") as update_span:
            update_span.set_attribute("db.operation", "UPDATE")
            update_span.set_attribute("db.table", "products")
            update_span.set_attribute("product.id", str(item.product_id))

            product = db.get(Product, item.product_id)
            if product is None:
                raise NotFoundError.for_field("Product", "id", item.product_id)

            if product.quantity < item.quantity:
                update_span.set_attribute("product.out_of_stock", True)
                raise OutOfStockError(product.name, product.quantity, item.quantity)

            old_stock = product.quantity
            product.quantity -= item.quantity
            update_span.set_attribute("product.stock.before", old_stock)
            update_span.set_attribute("product.stock.after", product.quantity)

            return product

    def _get_order(self, db: Session, order_id: uuid.UUID) -> Order:
        order = db.get(Order, order_id)
        if order is None:
            raise NotFoundError.for_field("Order", "id", order_id)
        return order

    def get_order(self, db: Session, order_id: uuid.UUID, user: CurrentUser) -> OrderResponse:
        """
        Get an order by ID.

        Customers may only read their own orders; administrators may read any.
        """
        order = self._get_order(db, order_id)
        if not user.is_admin and order.user_id != user.id:
            raise AccessDeniedError("Access denied: You can only view your own orders")
        return OrderResponse.from_order(order)

    def get_customer_orders(
        self,
        db: Session,
        customer_id: uuid.UUID,
        page: PageRequest
    ) -> PageResponse[OrderResponse]:
        """Get one page of a customer's order history."""
        with self.tracer.start_as_current_span("db.query.get_user_orders") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("user.id", str(customer_id))

            query = db.query(Order).filter(Order.user_id == customer_id).order_by(
                page.order_by(ORDER_SORT_COLUMNS, "orderDate")
            )
            result = paginate(query, page, self._to_responses)

            db_span.set_attribute("db.rows_returned", len(result.content))
            return result

    def get_all_orders(self, db: Session, page: PageRequest) -> PageResponse[OrderResponse]:
        """Get one page of every customer's orders."""
        query = db.query(Order).order_by(page.order_by(ORDER_SORT_COLUMNS, "orderDate"))
        return paginate(query, page, self._to_responses)

    def update_status(self, db: Session, order_id: uuid.UUID, new_status: OrderStatus) -> OrderResponse:
        """
        Move an order along its lifecycle.

        Completing an order stamps its actual delivery date. Cancelling does
        not restock the order's products.

        Raises:
            NotFoundError: If the order does not exist
            IllegalStateError: If the transition is not allowed
        """
        order = self._get_order(db, order_id)
        old_status = order.status

        check_transition(old_status, new_status)

        order.status = new_status
        if new_status == OrderStatus.COMPLETED:
            order.actual_delivery_date = utcnow()
        db.commit()
        db.refresh(order)

        order_status_transitions_counter.add(1, {
            "from_status": old_status.value,
            "to_status": new_status.value
        })
        logger.info("Order status updated", extra={
            "order_id": str(order_id),
            "from_status": old_status.value,
            "to_status": new_status.value
        })
        return OrderResponse.from_order(order)

    @staticmethod
    def _to_responses(orders: List[Order]) -> List[OrderResponse]:
        return [OrderResponse.from_order(order) for order in orders]
