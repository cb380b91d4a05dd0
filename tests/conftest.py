"""
Shared fixtures.

- db: a fresh mongomock database per test, with the real indexes
- client: TestClient whose get_db dependency returns that database
- make_user: inserts a user directly (the only way to get an admin)
- make_product: inserts a product with an explicit createdAt
- login / auth_header: token helpers
"""
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import database
from auth import Identity, hash_password
from main import app
from schemas import Product, ProductInput, Role, User

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def db():
    client = mongomock.MongoClient()
    test_db = client["switch_store_test"]
    database.ensure_indexes(test_db)
    yield test_db
    client.close()


@pytest.fixture
def client(db):
    app.dependency_overrides[database.get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email="user@nintendo.com", password="user123", role=Role.USER, name="John Doe"):
        user = User(name=name, email=email, password_hash=hash_password(password), role=role)
        result = db["user"].insert_one(user.model_dump(by_alias=True, exclude_none=True))
        return Identity.from_doc(db["user"].find_one({"_id": result.inserted_id}))

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@nintendo.com", password="admin123", role=Role.ADMIN, name="Admin User")


@pytest.fixture
def make_product(db, admin):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "name": f"Product {counter['n']}",
            "description": "A perfectly ordinary test product.",
            "price": 10.0,
            "category": "Accessories",
            "images": ["https://example.com/p.jpg"],
            "stock": 5,
        }
        rating = overrides.pop("rating", 0)
        num_reviews = overrides.pop("num_reviews", 0)
        created_at = overrides.pop("created_at", BASE_TIME + timedelta(days=counter["n"]))
        data.update(overrides)
        product = Product(
            **ProductInput(**data).model_dump(),
            rating=rating,
            num_reviews=num_reviews,
            created_by=ObjectId(admin.id),
            created_at=created_at,
            updated_at=created_at,
        )
        result = db["product"].insert_one(product.model_dump(by_alias=True, exclude_none=True))
        return str(result.inserted_id)

    return _make


@pytest.fixture
def login(client):
    def _login(email, password):
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()["token"]

    return _login


@pytest.fixture
def admin_token(admin, login):
    return login("admin@nintendo.com", "admin123")


@pytest.fixture
def user_token(make_user, login):
    make_user()
    return login("user@nintendo.com", "user123")


@pytest.fixture
def auth_header():
    def _header(token):
        return {"Authorization": f"Bearer {token}"}

    return _header
