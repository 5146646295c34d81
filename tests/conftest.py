import os

# Must be set before textile_inventory builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from textile_inventory.core_settings import get_settings
from textile_inventory.domain.models import (
    Base,
    Customer,
    DyeingProcess,
    InventoryItem,
    ThreadPurchase,
    ThreadType,
    Vendor,
)
from textile_inventory.infrastructure.db import SessionLocal, get_engine
from textile_inventory.infrastructure.repository import InventoryRepository
from textile_inventory.main import app


@pytest.fixture(autouse=True)
def schema():
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repo(db):
    return InventoryRepository(db)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def vendor(db):
    vendor = Vendor(name="Faisal Spinning Mills", contact="0300-1234567", city="Faisalabad")
    db.add(vendor)
    db.commit()
    return vendor


@pytest.fixture
def customer(db):
    customer = Customer(name="Lahore Garments", contact="0321-7654321", city="Lahore")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def make_purchase(db, vendor):
    """Insert a thread purchase row directly, bypassing the reconciliation flow."""

    def _make(**overrides):
        fields = dict(
            vendor_id=vendor.id,
            thread_type="Cotton",
            color="White",
            color_status="RAW",
            quantity=100,
            unit_price=Decimal("10.00"),
            total_cost=Decimal("1000.00"),
            unit_of_measure="meters",
            received=False,
        )
        fields.update(overrides)
        purchase = ThreadPurchase(**fields)
        db.add(purchase)
        db.commit()
        return purchase

    return _make


@pytest.fixture
def make_item(db):
    def _make(item_code="THR-MANUAL-1", product_type="THREAD", description="White Cotton Thread (RAW)",
              current_quantity=0, cost_per_unit=Decimal("0.00"), **overrides):
        item = InventoryItem(
            item_code=item_code,
            product_type=product_type,
            description=description,
            current_quantity=current_quantity,
            cost_per_unit=cost_per_unit,
            sale_price=Decimal("0.00"),
            unit_of_measure="meters",
            min_stock_level=0,
            **overrides,
        )
        db.add(item)
        db.commit()
        return item

    return _make


@pytest.fixture
def cotton(db):
    thread_type = ThreadType(name="Cotton", description="Combed cotton")
    db.add(thread_type)
    db.commit()
    return thread_type


@pytest.fixture
def make_dyeing(db):
    def _make(purchase, **overrides):
        fields = dict(
            thread_purchase_id=purchase.id,
            color_code="#FF0000",
            color_name="Red",
            dye_quantity=50,
            output_quantity=48,
            total_cost=Decimal("720.00"),
            result_status="PENDING",
        )
        fields.update(overrides)
        dyeing = DyeingProcess(**fields)
        db.add(dyeing)
        db.commit()
        return dyeing

    return _make


# API payload helpers

@pytest.fixture
def api_vendor(client):
    resp = client.post("/api/vendors", json={"name": "Gul Ahmed Yarn", "contact": "021-5550140"})
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def api_customer(client):
    resp = client.post("/api/customers", json={"name": "Sialkot Home Textiles", "contact": "052-5550123"})
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def received_purchase(client, api_vendor):
    """A received raw cotton purchase of 1000 m at 12.50, already in stock."""
    resp = client.post("/api/thread-purchases", json={
        "vendorId": api_vendor["id"],
        "threadType": "Cotton",
        "color": "White",
        "quantity": 1000,
        "unitPrice": 12.5,
        "received": True,
    })
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def thread_item(client, received_purchase):
    items = client.get("/api/inventory", params={"type": "THREAD"}).json()
    assert len(items) == 1
    return items[0]
