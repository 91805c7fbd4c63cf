"""Order placement and retrieval through the HTTP API."""
import uuid

from conftest import bearer


def place(client, headers, items, address="1 Main St", contact="555-0100-22"):
    return client.post("/api/orders", headers=headers, json={
        "orderItems": [{"productId": pid, "quantity": qty} for pid, qty in items],
        "deliveryAddress": address,
        "contactNumber": contact
    })


def test_place_order_computes_total_and_decrements_stock(client, customer, make_product, stock_of):
    milk = make_product("Milk", "3.50", 10)

    response = place(client, customer["headers"], [(milk, 2)])

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    order = body["data"]
    assert order["status"] == "PENDING"
    assert order["paymentMethod"] == "CASH_ON_DELIVERY"
    assert order["totalAmount"] == 7.0
    assert order["customerEmail"] == "alice@example.com"
    assert order["estimatedDeliveryDate"] is not None
    assert order["actualDeliveryDate"] is None
    assert len(order["orderItems"]) == 1
    item = order["orderItems"][0]
    assert item["productName"] == "Milk"
    assert item["price"] == 3.5
    assert item["subtotal"] == 7.0
    assert stock_of(milk) == 8


def test_total_sums_every_line(client, customer, make_product):
    milk = make_product("Milk", "3.50", 10)
    bread = make_product("Bread", "2.25", 5)

    response = place(client, customer["headers"], [(milk, 1), (bread, 3)])

    assert response.status_code == 201
    assert response.json()["data"]["totalAmount"] == 10.25


def test_insufficient_stock_rolls_back_every_line(client, customer, make_product, stock_of):
    milk = make_product("Milk", "3.50", 10)
    eggs = make_product("Eggs", "4.00", 1)

    response = place(client, customer["headers"], [(milk, 2), (eggs, 5)])

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Insufficient stock for product: Eggs. Available: 1, Requested: 5"
    assert stock_of(milk) == 10
    assert stock_of(eggs) == 1

    orders = client.get("/api/orders/my-orders", headers=customer["headers"]).json()["data"]
    assert orders["totalElements"] == 0


def test_unknown_product_rolls_back(client, customer, make_product, stock_of):
    milk = make_product("Milk", "3.50", 10)
    missing = str(uuid.uuid4())

    response = place(client, customer["headers"], [(milk, 2), (missing, 1)])

    assert response.status_code == 404
    assert response.json()["message"] == f"Product not found with id: {missing}"
    assert stock_of(milk) == 10


def test_duplicate_lines_are_checked_cumulatively(client, customer, make_product, stock_of):
    milk = make_product("Milk", "3.50", 3)

    response = place(client, customer["headers"], [(milk, 2), (milk, 2)])

    assert response.status_code == 400
    assert "Available: 1, Requested: 2" in response.json()["message"]
    assert stock_of(milk) == 3


def test_ordering_exact_stock_leaves_zero(client, customer, make_product, stock_of):
    milk = make_product("Milk", "3.50", 2)

    assert place(client, customer["headers"], [(milk, 2)]).status_code == 201
    assert stock_of(milk) == 0

    product = client.get(f"/api/products/{milk}").json()["data"]
    assert product["inStock"] is False


def test_empty_order_is_rejected(client, customer):
    response = place(client, customer["headers"], [])

    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"
    assert "orderItems" in response.json()["data"]


def test_zero_quantity_is_rejected(client, customer, make_product, stock_of):
    milk = make_product("Milk", "3.50", 10)

    response = place(client, customer["headers"], [(milk, 0)])

    assert response.status_code == 400
    assert stock_of(milk) == 10


def test_price_is_snapshotted_at_purchase(client, customer, admin, make_product):
    milk = make_product("Milk", "3.50", 10)
    order_id = place(client, customer["headers"], [(milk, 2)]).json()["data"]["id"]

    client.put(f"/api/products/{milk}", headers=admin["headers"], json={
        "name": "Milk", "price": "9.99", "quantity": 8
    })

    order = client.get(f"/api/orders/{order_id}", headers=customer["headers"]).json()["data"]
    assert order["totalAmount"] == 7.0
    assert order["orderItems"][0]["price"] == 3.5


def test_placing_requires_authentication(client, make_product):
    milk = make_product()

    response = place(client, {}, [(milk, 1)])

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_admin_cannot_place_orders(client, admin, make_product):
    milk = make_product()

    response = place(client, admin["headers"], [(milk, 1)])

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Insufficient privileges."


def test_customer_sees_only_own_orders(client, customer, register, make_product):
    milk = make_product()
    order_id = place(client, customer["headers"], [(milk, 1)]).json()["data"]["id"]

    bob = register(email="bob@example.com", full_name="Bob Jones")
    bob_headers = bearer(bob["token"])

    assert client.get(f"/api/orders/{order_id}", headers=bob_headers).status_code == 403
    assert client.get(f"/api/orders/{order_id}", headers=customer["headers"]).status_code == 200

    bob_orders = client.get("/api/orders/my-orders", headers=bob_headers).json()["data"]
    assert bob_orders["content"] == []


def test_my_orders_are_paged_newest_first(client, customer, make_product):
    milk = make_product(quantity=50)
    ids = [place(client, customer["headers"], [(milk, 1)]).json()["data"]["id"] for _ in range(3)]

    page = client.get("/api/orders/my-orders?page=0&size=2", headers=customer["headers"]).json()["data"]

    assert page["totalElements"] == 3
    assert page["totalPages"] == 2
    assert page["last"] is False
    assert len(page["content"]) == 2
    assert {o["id"] for o in page["content"]} <= set(ids)


def test_admin_lists_all_orders(client, customer, register, admin, make_product):
    milk = make_product(quantity=50)
    place(client, customer["headers"], [(milk, 1)])
    bob = register(email="bob@example.com", full_name="Bob Jones")
    place(client, bearer(bob["token"]), [(milk, 1)])

    assert client.get("/api/orders/admin/all", headers=customer["headers"]).status_code == 403

    page = client.get("/api/orders/admin/all", headers=admin["headers"]).json()["data"]
    assert page["totalElements"] == 2


def test_admin_can_read_any_order(client, customer, admin, make_product):
    milk = make_product()
    order_id = place(client, customer["headers"], [(milk, 1)]).json()["data"]["id"]

    response = client.get(f"/api/orders/{order_id}", headers=admin["headers"])

    assert response.status_code == 200
    assert response.json()["data"]["customerId"] == customer["id"]


def test_unknown_order_is_not_found(client, customer):
    response = client.get(f"/api/orders/{uuid.uuid4()}", headers=customer["headers"])

    assert response.status_code == 404


def test_register_login_and_order_scenario(client, make_product, stock_of):
    client.post("/api/auth/register", json={
        "fullName": "Alice Smith",
        "email": "alice@example.com",
        "password": "Passw0rd!",
        "confirmPassword": "Passw0rd!"
    })
    login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Passw0rd!"})
    assert login.status_code == 200
    headers = bearer(login.json()["data"]["token"])
    product = make_product("Milk", "3.50", 10)

    order = place(client, headers, [(product, 2)]).json()["data"]

    assert order["totalAmount"] == 7.0
    assert stock_of(product) == 8
