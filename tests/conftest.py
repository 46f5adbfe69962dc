import os

# Must be set before anything imports solar_orders settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from solar_orders.domain.models import Base, Inventory, Product, Warehouse
from solar_orders.infrastructure.auth import create_access_token
from solar_orders.infrastructure.db import SessionLocal, engine
from solar_orders.main import app


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token('admin@example.com', role='admin')}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {create_access_token('sales@example.com', role='sales')}"}


# ORM factories for service level tests

def make_product(db, name, price, sku=None, is_bundle=False, pricing_type="calculated", discount=0):
    product = Product(
        sku=sku or name.upper().replace(" ", "-"),
        name=name,
        price=price,
        is_bundle=is_bundle,
        bundle_pricing_type=pricing_type,
        bundle_discount_percentage=discount,
    )
    db.add(product)
    db.flush()
    return product


def make_warehouse(db, name):
    warehouse = Warehouse(name=name)
    db.add(warehouse)
    db.flush()
    return warehouse


def make_stock(db, product, warehouse, quantity, min_quantity=0):
    row = Inventory(product_id=product.id, warehouse_id=warehouse.id, quantity=quantity, min_quantity=min_quantity)
    db.add(row)
    db.flush()
    return row


# API factories for endpoint tests

def api_product(client, headers, name, price, **extra):
    resp = client.post("/api/products/", json={"name": name, "price": price, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def api_warehouse(client, headers, name):
    resp = client.post("/api/warehouses/", json={"name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def api_stock(client, headers, product_id, warehouse_id, quantity, min_quantity=0):
    resp = client.post(
        "/api/inventory/",
        json={"product_id": product_id, "warehouse_id": warehouse_id,
              "quantity": quantity, "min_quantity": min_quantity},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def api_order(client, headers, items, status="Proposed", contact_id=1, **extra):
    resp = client.post(
        "/api/orders/",
        json={"contact_id": contact_id, "status": status, "items": items, **extra},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
