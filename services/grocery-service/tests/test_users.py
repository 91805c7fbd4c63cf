"""Profile self-service and account administration."""
from conftest import CUSTOMER_PASSWORD


def test_get_profile(client, customer):
    response = client.get("/api/users/profile", headers=customer["headers"])

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "alice@example.com"
    assert data["fullName"] == "Alice Smith"
    assert data["role"] == "CUSTOMER"
    assert "passwordHash" not in data


def test_update_profile(client, customer):
    response = client.put("/api/users/profile", headers=customer["headers"], json={
        "fullName": "Alice Cooper",
        "address": "42 Elm St",
        "contactNumber": "+1 555 0199"
    })

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["fullName"] == "Alice Cooper"
    assert data["address"] == "42 Elm St"


def test_change_password(client, customer):
    response = client.put("/api/users/change-password", headers=customer["headers"], json={
        "currentPassword": CUSTOMER_PASSWORD,
        "newPassword": "brandnew1",
        "confirmPassword": "brandnew1"
    })
    assert response.status_code == 200

    old = client.post("/api/auth/login", json={"email": "alice@example.com", "password": CUSTOMER_PASSWORD})
    new = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "brandnew1"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_change_password_wrong_current(client, customer):
    response = client.put("/api/users/change-password", headers=customer["headers"], json={
        "currentPassword": "not-it",
        "newPassword": "brandnew1",
        "confirmPassword": "brandnew1"
    })

    assert response.status_code == 400
    assert response.json()["message"] == "Current password is incorrect"


def test_change_password_mismatch(client, customer):
    response = client.put("/api/users/change-password", headers=customer["headers"], json={
        "currentPassword": CUSTOMER_PASSWORD,
        "newPassword": "brandnew1",
        "confirmPassword": "brandnew2"
    })

    assert response.status_code == 400
    assert response.json()["message"] == "New passwords do not match"


def test_change_password_over_byte_limit(client, customer):
    response = client.put("/api/users/change-password", headers=customer["headers"], json={
        "currentPassword": CUSTOMER_PASSWORD,
        "newPassword": "é" * 40,
        "confirmPassword": "é" * 40
    })

    assert response.status_code == 400
    assert "newPassword" in response.json()["data"]

    still = client.post("/api/auth/login", json={"email": "alice@example.com", "password": CUSTOMER_PASSWORD})
    assert still.status_code == 200


def test_user_administration_is_admin_only(client, customer):
    assert client.get("/api/users", headers=customer["headers"]).status_code == 403
    assert client.get(f"/api/users/{customer['id']}", headers=customer["headers"]).status_code == 403


def test_admin_lists_and_searches_users(client, admin, customer, register):
    register(email="bob@example.com", full_name="Bob Jones")

    everyone = client.get("/api/users", headers=admin["headers"]).json()["data"]
    assert everyone["totalElements"] == 3

    found = client.get("/api/users/search?q=bob", headers=admin["headers"]).json()["data"]
    assert [u["email"] for u in found["content"]] == ["bob@example.com"]

    customers = client.get("/api/users/role/CUSTOMER", headers=admin["headers"]).json()["data"]
    assert customers["totalElements"] == 2


def test_user_search_treats_wildcards_literally(client, admin, customer, register):
    register(email="first_last@example.com", full_name="First Last")

    underscore = client.get("/api/users/search?q=_", headers=admin["headers"]).json()["data"]
    assert [u["email"] for u in underscore["content"]] == ["first_last@example.com"]

    percent = client.get("/api/users/search?q=%25", headers=admin["headers"]).json()["data"]
    assert percent["totalElements"] == 0


def test_admin_promotes_user(client, admin, customer):
    response = client.put(f"/api/users/{customer['id']}/role?role=ADMIN", headers=admin["headers"])

    assert response.status_code == 200
    assert response.json()["data"]["role"] == "ADMIN"

    # Role is read from the account on each request
    assert client.get("/api/users", headers=customer["headers"]).status_code == 200


def test_delete_user_cascades(client, admin, customer, make_product, stock_of):
    milk = make_product(quantity=5)
    client.post("/api/orders", headers=customer["headers"], json={
        "orderItems": [{"productId": milk, "quantity": 1}],
        "deliveryAddress": "1 Main St",
        "contactNumber": "555-0100-22"
    })
    client.post(f"/api/products/{milk}/reviews", headers=customer["headers"], json={"rating": 4})

    response = client.delete(f"/api/users/{customer['id']}", headers=admin["headers"])

    assert response.status_code == 200
    assert client.get(f"/api/users/{customer['id']}", headers=admin["headers"]).status_code == 404
    assert client.get("/api/orders/admin/all", headers=admin["headers"]).json()["data"]["totalElements"] == 0
    assert client.get(f"/api/products/{milk}").json()["data"]["reviewCount"] == 0
    assert stock_of(milk) == 4


def test_health_has_no_envelope(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
