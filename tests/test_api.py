import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("DB_URL", "sqlite://")

from terminal_inventory import create_app
from terminal_inventory.core.config import settings
from terminal_inventory.db.session import Base
from terminal_inventory.deps.store import get_store
from terminal_inventory.services.device_store import DeviceStore
from terminal_inventory.services.seed import seed_demo_devices

# Ensure models are registered so metadata tables are created
from terminal_inventory.models import device as device_model  # noqa: F401


ALPHA = {
    "name": "Alpha Ltd",
    "terminal_id": "TER-1234",
    "email": "alpha@example.com",
    "phone": "052-1234567",
    "account_code": "ACC-001",
}


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture()
def store(session_factory):
    return DeviceStore(session_factory)


@pytest.fixture()
def client(store, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "")
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


def _add(client, model="PAX A920", serial="S1", entry_date="2024-01-10"):
    response = client.post(
        "/api/v1/devices",
        json={"model_name": model, "serial_number": serial, "entry_date": entry_date},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_add_and_fetch_device(client):
    created = _add(client)

    assert created["model_name"] == "PAX A920"
    assert created["is_available"] is True
    assert created["exit_date"] is None

    response = client.get(f"/api/v1/devices/{created['id']}")
    assert response.status_code == 200
    assert response.json() == created
    assert response.headers["X-Request-ID"]


def test_duplicate_serial_returns_conflict_envelope(client):
    _add(client, serial="S1")

    response = client.post(
        "/api/v1/devices",
        json={"model_name": "PAX A920", "serial_number": " S1 ", "entry_date": "2024-01-11"},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "duplicate_serial"
    assert body["details"] == {"serial_numbers": ["S1"]}


def test_unknown_device_returns_not_found_envelope(client):
    response = client.get("/api/v1/devices/999")
    assert response.status_code == 404
    assert response.json()["code"] == "device_not_found"


def test_batch_create_accepts_pasted_text(client):
    response = client.post(
        "/api/v1/devices/batch",
        json={"model_name": "Verifone V240m", "serial_numbers": "VF-1\nVF-2, VF-3", "entry_date": "2024-03-01"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["created"] == 3
    assert sorted(d["serial_number"] for d in body["devices"]) == ["VF-1", "VF-2", "VF-3"]


def test_batch_create_with_repeated_serial_creates_nothing(client):
    response = client.post(
        "/api/v1/devices/batch",
        json={"model_name": "PAX A920", "serial_numbers": ["A", "A"], "entry_date": "2024-03-01"},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"
    assert client.get("/api/v1/devices").json() == []


def test_checkout_and_return_cycle(client):
    device = _add(client)

    response = client.post(
        f"/api/v1/devices/{device['id']}/checkout",
        json={"exit_date": "2024-02-01", "reason": "rental", "customer_info": ALPHA},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["removal_reason"] == "rental"
    assert body["customer_info"] == ALPHA
    assert body["is_available"] is False

    stats = client.get("/api/v1/inventory/stats").json()
    assert stats["rented_devices"] == 1
    assert stats["available_devices"] == 0

    response = client.post(f"/api/v1/devices/{device['id']}/return")
    assert response.status_code == 200
    assert response.json()["is_available"] is True

    response = client.post(f"/api/v1/devices/{device['id']}/return")
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_state"


def test_checkout_with_unknown_reason_is_rejected(client):
    device = _add(client)
    response = client.post(
        f"/api/v1/devices/{device['id']}/checkout",
        json={"exit_date": "2024-02-01", "reason": "gift", "customer_info": ALPHA},
    )
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["details"]["errors"]


def test_checkout_before_entry_is_rejected(client):
    device = _add(client, entry_date="2024-01-10")
    response = client.post(
        f"/api/v1/devices/{device['id']}/checkout",
        json={"exit_date": "2024-01-01", "reason": "loan", "customer_info": ALPHA},
    )
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_batch_checkout_and_return_report_failures(client):
    first = _add(client, serial="S1")
    second = _add(client, serial="S2")

    response = client.post(
        "/api/v1/devices/checkout",
        json={
            "device_ids": [first["id"], second["id"], 999],
            "exit_date": "2024-02-01",
            "reason": "loan",
            "customer_info": ALPHA,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["succeeded"] == 2
    assert body["failed"] == [
        {"device_id": 999, "code": "device_not_found", "message": "Device 999 not found"}
    ]

    response = client.post("/api/v1/devices/return", json={"device_ids": [first["id"]]})
    assert response.json() == {"succeeded": 1, "failed": []}


def test_list_devices_filters_and_sorts(client):
    old = _add(client, model="PAX A920", serial="PAX-1", entry_date="2024-01-01")
    new = _add(client, model="Verifone V240m", serial="VF-1", entry_date="2024-02-01")
    out = _add(client, model="PAX A920", serial="PAX-2", entry_date="2024-03-01")
    client.post(
        f"/api/v1/devices/{out['id']}/checkout",
        json={"exit_date": "2024-03-05", "reason": "sale", "customer_info": ALPHA},
    )

    ids = [d["id"] for d in client.get("/api/v1/devices").json()]
    assert ids == [new["id"], old["id"], out["id"]]

    ids = [d["id"] for d in client.get("/api/v1/devices", params={"q": "pax"}).json()]
    assert ids == [old["id"], out["id"]]

    ids = [d["id"] for d in client.get("/api/v1/devices", params={"status": "checked_out"}).json()]
    assert ids == [out["id"]]

    ids = [d["id"] for d in client.get("/api/v1/devices", params={"reason": "sale"}).json()]
    assert ids == [out["id"]]


def test_model_summaries_endpoint(client):
    _add(client, model="X", serial="S1")
    second = _add(client, model="X", serial="S2")
    _add(client, model="Y", serial="S3")
    client.post(
        f"/api/v1/devices/{second['id']}/checkout",
        json={"exit_date": "2024-02-01", "reason": "rental", "customer_info": ALPHA},
    )

    summaries = client.get("/api/v1/inventory/models").json()

    assert summaries == [
        {"id": "x", "name": "X", "total_count": 2, "available_count": 1, "in_use_count": 1, "availability_percent": 50},
        {"id": "y", "name": "Y", "total_count": 1, "available_count": 1, "in_use_count": 0, "availability_percent": 100},
    ]


def test_customer_groups_keep_customers_without_search_hits(client, store):
    seed_demo_devices(store)
    extra = _add(client, model="Verifone V240m", serial="VF-99", entry_date="2024-01-01")
    client.post(
        f"/api/v1/devices/{extra['id']}/checkout",
        json={"exit_date": "2024-02-01", "reason": "rental", "customer_info": {"name": "Gamma Ltd"}},
    )

    groups = client.get("/api/v1/inventory/customers", params={"reason": "rental"}).json()
    assert [g["customer_info"]["name"] for g in groups] == ["Alpha Ltd", "Gamma Ltd"]
    assert [g["device_count"] for g in groups] == [1, 1]

    groups = client.get("/api/v1/inventory/customers", params={"reason": "rental", "q": "verifone"}).json()
    assert [g["customer_info"]["name"] for g in groups] == ["Alpha Ltd", "Gamma Ltd"]
    assert [g["device_count"] for g in groups] == [0, 1]

    sold = client.get("/api/v1/inventory/customers", params={"reason": "sale"}).json()
    assert [g["customer_info"]["name"] for g in sold] == ["Beta Ltd"]


def test_refresh_reloads_snapshot(client):
    _add(client, serial="S1")
    response = client.post("/api/v1/devices/refresh")
    assert response.status_code == 200
    assert [d["serial_number"] for d in response.json()] == ["S1"]


def test_api_key_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret")

    response = client.get("/api/v1/inventory/stats")
    assert response.status_code == 401
    assert response.json() == {"code": "http_error", "message": "Invalid API key"}

    response = client.get("/api/v1/inventory/stats", headers={"X-API-Key": "wrong"})
    assert response.status_code == 401

    response = client.get("/api/v1/inventory/stats", headers={"X-API-Key": "secret"})
    assert response.status_code == 200


def test_seed_only_fills_an_empty_store(store):
    assert seed_demo_devices(store) == 3
    assert seed_demo_devices(store) == 0

    by_serial = {d.serial_number: d for d in store.list_devices()}
    assert by_serial["VF-12345"].is_available
    assert by_serial["PAX-67890"].removal_reason == "rental"
    assert by_serial["ING-54321"].customer_info.name == "Beta Ltd"


def test_malformed_stored_row_returns_persistence_envelope(client, session_factory):
    with session_factory() as db:
        db.execute(text("INSERT INTO device_models (id, name) VALUES (1, 'PAX A920')"))
        db.execute(
            text(
                "INSERT INTO devices (model_id, serial_number, entry_date, exit_date, removal_reason, customer_id) "
                "VALUES (1, 'BAD-1', '2024-01-10', '2024-02-01', 'rental', NULL)"
            )
        )
        db.commit()

    response = client.get("/api/v1/inventory/stats")

    assert response.status_code == 503
    body = response.json()
    assert body["code"] == "persistence_error"
    assert body["details"] == {"device_id": 1}
