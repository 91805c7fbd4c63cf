"""Shared fixtures: a throwaway SQLite database and an HTTP test client."""
import os
import tempfile
import uuid
from decimal import Decimal

# Configuration is read at import time, so it must be in place first
_DB_DIR = tempfile.mkdtemp(prefix="grocery-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["OTEL_ENABLED"] = "false"
os.environ["PROFILING_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_DATA"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from database import SessionLocal, engine
from main import app
from models import Base, Product, User, UserRole
from security import hash_password

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass"
CUSTOMER_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register a customer and return the issued token payload."""

    def _register(email="alice@example.com", full_name="Alice Smith", password=CUSTOMER_PASSWORD):
        response = client.post("/api/auth/register", json={
            "fullName": full_name,
            "email": email,
            "password": password,
            "confirmPassword": password,
            "address": "1 Main St",
            "contactNumber": "555-0100-22"
        })
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _register


@pytest.fixture
def customer(register):
    data = register()
    return {"id": data["id"], "email": data["email"], "headers": bearer(data["token"])}


@pytest.fixture
def admin(client, db):
    user = User(
        email=ADMIN_EMAIL,
        password_hash=hash_password(ADMIN_PASSWORD),
        full_name="Store Admin",
        role=UserRole.ADMIN
    )
    db.add(user)
    db.commit()

    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    return {"id": data["id"], "email": ADMIN_EMAIL, "headers": bearer(data["token"])}


@pytest.fixture
def make_product(db):
    """Insert a product directly and return its id as a string."""

    def _make_product(name="Milk", price="3.50", quantity=10, description=None):
        product = Product(name=name, description=description, price=Decimal(price), quantity=quantity)
        db.add(product)
        db.commit()
        return str(product.id)

    return _make_product


@pytest.fixture
def stock_of(db):
    """Read a product's current stock from a fresh query."""

    def _stock_of(product_id):
        db.expire_all()
        quantity = db.get(Product, uuid.UUID(product_id)).quantity
        db.rollback()
        return quantity

    return _stock_of
