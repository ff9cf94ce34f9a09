import os
import pathlib
import sys

import pytest
from fastapi.testclient import TestClient

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("JWT_SECRET", "jwt_test_secret_for_agri_dashboard")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("STORE_BACKEND", "memory")

from app.main import create_app
from app.store import store

DEFAULT_PASSWORD = "Passw0rd!"


@pytest.fixture(autouse=True)
def reset_store(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("JWT_SECRET", "jwt_test_secret_for_agri_dashboard")
    monkeypatch.setenv("JWT_EXPIRE", "1h")
    monkeypatch.delenv("JWT_ISSUER", raising=False)
    monkeypatch.delenv("JWT_AUDIENCE", raising=False)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("LOW_STOCK_THRESHOLD", "10")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    store.reset()
    yield


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register(client: TestClient, *, email: str, role: str = "farmer", full_name: str = "Test User", **extra):
    resp = client.post(
        "/api/auth/register",
        json={"email": email, "password": DEFAULT_PASSWORD, "full_name": full_name, "role": role, **extra},
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return data["user"], _auth_headers(data["token"])


@pytest.fixture
def admin(client):
    return _register(client, email="admin@example.com", role="admin", full_name="Admin User")


@pytest.fixture
def agent(client):
    return _register(client, email="agent@example.com", role="agent", full_name="Field Agent")


@pytest.fixture
def farmer(client):
    return _register(client, email="farmer@example.com", role="farmer", full_name="Farmer One")


@pytest.fixture
def manager(client):
    return _register(client, email="manager@example.com", role="shop_manager", full_name="Shop Manager")


SUPPLIER_PAYLOAD = {
    "name": "Green Valley Inputs",
    "category": "seeds_supplier",
    "contact_person": "Alice Uwase",
    "email": "contact@greenvalley.rw",
    "phone": "+250788111222",
    "address": {"street_address": "KN 5 Rd", "city": "Kigali", "province": "Kigali", "district": "Gasabo"},
    "status": "active",
}


def _product_payload(supplier_id: str, **overrides):
    payload = {
        "name": "Drip Line 16mm",
        "category": "irrigation",
        "description": "Irrigation drip line",
        "price": 25.0,
        "quantity": 50,
        "unit": "piece",
        "supplier_id": supplier_id,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def supplier(client, admin):
    _, headers = admin
    resp = client.post("/api/suppliers", json=SUPPLIER_PAYLOAD, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
def product(client, admin, supplier):
    _, headers = admin
    resp = client.post("/api/products", json=_product_payload(supplier["id"]), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
def make_user(client):
    def factory(*, email: str, role: str = "farmer", full_name: str = "Test User", **extra):
        return _register(client, email=email, role=role, full_name=full_name, **extra)

    return factory


@pytest.fixture
def product_payload():
    return _product_payload
