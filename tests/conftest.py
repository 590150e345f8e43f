"""
Shared fixtures: a file-backed SQLite database per test, a seeded catalog,
the wired-up order services and a FastAPI TestClient.
"""

import json
import os
from decimal import Decimal

# keep test runs from writing order_intake.log into the working directory
os.environ["LOG_FILE"] = ""

import pytest
from fastapi.testclient import TestClient

from order_intake.access import ContractorGate
from order_intake.catalog import CatalogStore
from order_intake.database import create_db_engine, create_session_factory, init_schema
from order_intake.models import InventoryItemCreate
from order_intake.reservation import ReservationEngine
from order_intake.settings import Settings
from order_intake.workflow import OrderServices

CONTRACTOR_CODE = "let-me-in"
ADMIN_USER = "admin"
ADMIN_PASSWORD = "s3cret-pass"

SEED = [
    {"sku": "WDG-1", "name": "Widget", "category": "Parts", "supplier": "Acme",
     "priceRetail": 9.00, "priceContractor": 7.00, "qtyAvailable": 10, "reorderPoint": 2},
    {"sku": "GZM-2", "name": "Gizmo", "category": "Parts", "supplier": "Acme",
     "priceRetail": 20.00, "priceContractor": 15.00, "qtyAvailable": 3, "reorderPoint": 1},
    {"sku": "ABC-0", "name": "Anchor Bolt", "category": "Hardware", "supplier": "Fastenall",
     "notes": "Box of 50", "priceRetail": 1.25, "priceContractor": 1.00, "qtyAvailable": 50},
]


class RecordingNotifier:
    """Stands in for the SMTP client; remembers every message or fails on demand."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send_purchase_order(self, recipients, subject, body, attachment, filename):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({
            "recipients": list(recipients),
            "subject": subject,
            "body": body,
            "attachment": attachment,
            "filename": filename,
        })


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(SEED), encoding="utf-8")
    return path


@pytest.fixture
def settings(tmp_path, seed_file):
    return Settings(
        DATABASE_URL=f"sqlite:///{(tmp_path / 'orders.db').as_posix()}",
        CONTRACTOR_ACCESS_CODE=CONTRACTOR_CODE,
        ADMIN_USERNAME=ADMIN_USER,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        OWNER_EMAIL="owner@marlowe.test",
        TAX_RATE=Decimal("0.0925"),
        SEED_FILE=seed_file,
        LOG_FILE="",
    )


@pytest.fixture
def session_factory(settings):
    engine = create_db_engine(settings)
    init_schema(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def catalog(session_factory):
    store = CatalogStore(session_factory)
    store.seed_if_empty(InventoryItemCreate.model_validate(entry) for entry in SEED)
    return store


@pytest.fixture
def reservations(catalog, session_factory):
    return ReservationEngine(catalog, session_factory)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def contractor_gate():
    return ContractorGate(CONTRACTOR_CODE)


@pytest.fixture
def services(catalog, reservations, contractor_gate, notifier, settings):
    return OrderServices(
        catalog=catalog,
        reservations=reservations,
        contractor_gate=contractor_gate,
        notifier=notifier,
        settings=settings,
    )


@pytest.fixture
def client(settings, notifier):
    from order_intake.main import create_app

    app = create_app(settings, notifier=notifier)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    response = client.post("/api/admin/login", json={"username": ADMIN_USER, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client
