import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")

import pytest
from fastapi.testclient import TestClient

from kasir.db.schema import create_schema, drop_schema
from kasir.db.session import SessionLocal, engine
from kasir.main import app
from kasir.schemas.users import Role, UserCreate
from kasir.services import users

ADMIN_EMAIL = "admin@toko.test"
KASIR_EMAIL = "kasir@toko.test"
PASSWORD = "rahasia123"


@pytest.fixture(autouse=True)
def database():
    create_schema(engine)
    yield
    drop_schema(engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def _login(client, email):
    response = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_user(db):
    return users.create_user(db, UserCreate(email=ADMIN_EMAIL, password=PASSWORD, full_name="Admin Toko", role=Role.ADMIN))


@pytest.fixture
def kasir_user(db):
    return users.create_user(db, UserCreate(email=KASIR_EMAIL, password=PASSWORD, full_name="Kasir Satu", role=Role.KASIR))


@pytest.fixture
def admin_headers(client, admin_user):
    return _login(client, ADMIN_EMAIL)


@pytest.fixture
def kasir_headers(client, kasir_user):
    return _login(client, KASIR_EMAIL)


@pytest.fixture
def make_product(client, kasir_headers):
    def _make(name="Charger 20W", buy_price=10000, retail_price=15000, reseller_price=13000, stock=10, **extra):
        response = client.post(
            "/products",
            json={
                "name": name,
                "buy_price": buy_price,
                "retail_price": retail_price,
                "reseller_price": reseller_price,
                "stock": stock,
                **extra,
            },
            headers=kasir_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_customer(client, kasir_headers):
    def _make(name="Budi", customer_type="retail", phone="081200000000"):
        response = client.post(
            "/customers",
            json={"name": name, "phone": phone, "customer_type": customer_type},
            headers=kasir_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make
