"""Product reviews and rating aggregation."""
from conftest import bearer


def review(client, headers, product_id, rating, comment="Nice"):
    return client.post(f"/api/products/{product_id}/reviews", headers=headers, json={
        "rating": rating,
        "comment": comment
    })


def test_create_review(client, customer, make_product):
    milk = make_product()

    response = review(client, customer["headers"], milk, 4)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["rating"] == 4
    assert data["productName"] == "Milk"
    assert data["userName"] == "Alice Smith"


def test_second_review_by_same_user_conflicts(client, customer, make_product):
    milk = make_product()
    review(client, customer["headers"], milk, 4)

    response = review(client, customer["headers"], milk, 2)

    assert response.status_code == 409
    assert response.json()["message"] == "You have already reviewed this product"


def test_rating_summary_reflects_reviews(client, customer, register, make_product):
    milk = make_product()
    untouched = make_product("Bread")
    bob = bearer(register(email="bob@example.com", full_name="Bob Jones")["token"])
    carol = bearer(register(email="carol@example.com", full_name="Carol White")["token"])

    review(client, customer["headers"], milk, 5)
    review(client, bob, milk, 4)
    review(client, carol, milk, 4)

    product = client.get(f"/api/products/{milk}").json()["data"]
    assert product["reviewCount"] == 3
    assert product["averageRating"] == 4.33

    other = client.get(f"/api/products/{untouched}").json()["data"]
    assert other["reviewCount"] == 0
    assert other["averageRating"] == 0.0


def test_rating_out_of_range_is_rejected(client, customer, make_product):
    milk = make_product()

    assert review(client, customer["headers"], milk, 0).status_code == 400
    assert review(client, customer["headers"], milk, 6).status_code == 400


def test_review_of_missing_product(client, customer):
    response = review(client, customer["headers"], "00000000-0000-0000-0000-000000000000", 3)

    assert response.status_code == 404


def test_admin_cannot_write_reviews(client, admin, make_product):
    milk = make_product()

    assert review(client, admin["headers"], milk, 5).status_code == 403


def test_author_updates_review(client, customer, make_product):
    milk = make_product()
    review_id = review(client, customer["headers"], milk, 2).json()["data"]["id"]

    response = client.put(f"/api/reviews/{review_id}", headers=customer["headers"], json={
        "rating": 5,
        "comment": "Better than I thought"
    })

    assert response.status_code == 200
    assert response.json()["data"]["rating"] == 5
    assert client.get(f"/api/products/{milk}").json()["data"]["averageRating"] == 5.0


def test_other_customer_cannot_edit_or_delete(client, customer, register, make_product):
    milk = make_product()
    review_id = review(client, customer["headers"], milk, 2).json()["data"]["id"]
    bob = bearer(register(email="bob@example.com", full_name="Bob Jones")["token"])

    edit = client.put(f"/api/reviews/{review_id}", headers=bob, json={"rating": 1})
    delete = client.delete(f"/api/reviews/{review_id}", headers=bob)

    assert edit.status_code == 403
    assert delete.status_code == 403


def test_author_and_admin_can_delete(client, customer, register, admin, make_product):
    milk = make_product()
    bob = bearer(register(email="bob@example.com", full_name="Bob Jones")["token"])
    own = review(client, customer["headers"], milk, 3).json()["data"]["id"]
    bobs = review(client, bob, milk, 1).json()["data"]["id"]

    assert client.delete(f"/api/reviews/{own}", headers=customer["headers"]).status_code == 200
    assert client.delete(f"/api/reviews/{bobs}", headers=admin["headers"]).status_code == 200

    product = client.get(f"/api/products/{milk}").json()["data"]
    assert product["reviewCount"] == 0


def test_deleted_review_allows_a_new_one(client, customer, make_product):
    milk = make_product()
    review_id = review(client, customer["headers"], milk, 3).json()["data"]["id"]
    client.delete(f"/api/reviews/{review_id}", headers=customer["headers"])

    assert review(client, customer["headers"], milk, 4).status_code == 201


def test_list_reviews_is_public_and_paged(client, customer, register, make_product):
    milk = make_product()
    bob = bearer(register(email="bob@example.com", full_name="Bob Jones")["token"])
    review(client, customer["headers"], milk, 5)
    review(client, bob, milk, 1)

    page = client.get(f"/api/products/{milk}/reviews?size=1&sortBy=rating&sortDir=asc").json()["data"]

    assert page["totalElements"] == 2
    assert page["content"][0]["rating"] == 1
    assert page["last"] is False


def test_unknown_sort_field_is_rejected(client, make_product):
    milk = make_product()

    response = client.get(f"/api/products/{milk}/reviews?sortBy=password")

    assert response.status_code == 400
