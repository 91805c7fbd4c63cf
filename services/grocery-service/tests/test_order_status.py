"""Order lifecycle transitions."""
import pytest

from exceptions import IllegalStateError
from models import OrderStatus
from order_status import can_transition, check_transition, is_terminal


@pytest.mark.parametrize("current,target", [
    (OrderStatus.PENDING, OrderStatus.PROCESSING),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.PROCESSING, OrderStatus.COMPLETED),
    (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
])
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    check_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (OrderStatus.PENDING, OrderStatus.COMPLETED),
    (OrderStatus.PENDING, OrderStatus.PENDING),
    (OrderStatus.PROCESSING, OrderStatus.PENDING),
    (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    (OrderStatus.CANCELLED, OrderStatus.PENDING),
])
def test_rejected_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(IllegalStateError):
        check_transition(current, target)


def test_terminal_states():
    assert is_terminal(OrderStatus.COMPLETED)
    assert is_terminal(OrderStatus.CANCELLED)
    assert not is_terminal(OrderStatus.PENDING)


@pytest.fixture
def pending_order(client, customer, make_product):
    milk = make_product("Milk", "3.50", 10)
    response = client.post("/api/orders", headers=customer["headers"], json={
        "orderItems": [{"productId": milk, "quantity": 2}],
        "deliveryAddress": "1 Main St",
        "contactNumber": "555-0100-22"
    })
    return {"id": response.json()["data"]["id"], "product_id": milk}


def set_status(client, headers, order_id, status):
    return client.put(f"/api/orders/{order_id}/status?status={status}", headers=headers)


def test_completing_stamps_delivery_date(client, admin, pending_order):
    order_id = pending_order["id"]

    processing = set_status(client, admin["headers"], order_id, "PROCESSING")
    assert processing.status_code == 200
    assert processing.json()["data"]["status"] == "PROCESSING"
    assert processing.json()["data"]["actualDeliveryDate"] is None

    completed = set_status(client, admin["headers"], order_id, "COMPLETED")
    assert completed.status_code == 200
    assert completed.json()["data"]["status"] == "COMPLETED"
    assert completed.json()["data"]["actualDeliveryDate"] is not None


def test_terminal_order_cannot_change(client, admin, pending_order):
    order_id = pending_order["id"]
    assert set_status(client, admin["headers"], order_id, "CANCELLED").status_code == 200

    response = set_status(client, admin["headers"], order_id, "PROCESSING")

    assert response.status_code == 409
    assert response.json()["success"] is False


def test_skipping_processing_is_rejected(client, admin, pending_order):
    response = set_status(client, admin["headers"], pending_order["id"], "COMPLETED")

    assert response.status_code == 409
    assert response.json()["message"] == "Cannot change order status from PENDING to COMPLETED"


def test_cancelling_does_not_restock(client, admin, pending_order, stock_of):
    set_status(client, admin["headers"], pending_order["id"], "CANCELLED")

    assert stock_of(pending_order["product_id"]) == 8


def test_customer_cannot_change_status(client, customer, pending_order):
    response = set_status(client, customer["headers"], pending_order["id"], "CANCELLED")

    assert response.status_code == 403


def test_unknown_status_value_is_rejected(client, admin, pending_order):
    response = set_status(client, admin["headers"], pending_order["id"], "SHIPPED")

    assert response.status_code == 400
    assert "status" in response.json()["data"]
