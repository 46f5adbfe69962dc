from conftest import api_product, api_stock, api_warehouse


def _row(client, headers, quantity=10, min_quantity=0):
    panel = api_product(client, headers, "Panel", 100, sku="PNL-400")
    north = api_warehouse(client, headers, "North")
    return panel, north, api_stock(client, headers, panel["id"], north["id"], quantity, min_quantity)


def test_create_inventory_row(client, admin_headers):
    panel, north, row = _row(client, admin_headers)
    assert row["quantity"] == 10

    resp = client.post(
        "/api/inventory/",
        json={"product_id": panel["id"], "warehouse_id": north["id"], "quantity": 1},
        headers=admin_headers,
    )
    assert resp.status_code == 409


def test_create_inventory_for_unknown_warehouse(client, admin_headers):
    panel = api_product(client, admin_headers, "Panel", 100)
    resp = client.post(
        "/api/inventory/",
        json={"product_id": panel["id"], "warehouse_id": 42, "quantity": 1},
        headers=admin_headers,
    )
    assert resp.status_code == 404


def test_negative_stock_cannot_be_created(client, admin_headers):
    panel = api_product(client, admin_headers, "Panel", 100)
    north = api_warehouse(client, admin_headers, "North")
    resp = client.post(
        "/api/inventory/",
        json={"product_id": panel["id"], "warehouse_id": north["id"], "quantity": -1},
        headers=admin_headers,
    )
    assert resp.status_code == 422


def test_list_is_paginated_and_searchable(client, admin_headers):
    north = api_warehouse(client, admin_headers, "North")
    for i in range(3):
        product = api_product(client, admin_headers, f"Battery {i}", 10)
        api_stock(client, admin_headers, product["id"], north["id"], i)
    inverter = api_product(client, admin_headers, "Inverter", 50)
    api_stock(client, admin_headers, inverter["id"], north["id"], 1)

    page = client.get("/api/inventory/", params={"page": 1, "limit": 2}, headers=admin_headers).json()
    assert page["total"] == 4
    assert page["total_pages"] == 2
    assert len(page["inventory"]) == 2

    found = client.get("/api/inventory/", params={"search": "battery"}, headers=admin_headers).json()
    assert found["total"] == 3


def test_adjust_and_audit_trail(client, admin_headers):
    _, _, row = _row(client, admin_headers)
    url = f"/api/inventory/{row['id']}"

    resp = client.post(f"{url}/adjust", json={"delta": -4, "reason": "Damaged in transit"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["quantity"] == 6

    resp = client.post(f"{url}/adjust", json={"delta": -7, "reason": "Too much"}, headers=admin_headers)
    assert resp.status_code == 400
    assert client.get(url, headers=admin_headers).json()["quantity"] == 6

    audit = client.get(f"{url}/adjustments", headers=admin_headers).json()
    assert [(a["delta"], a["quantity_after"], a["reason"]) for a in audit] == [(-4, 6, "Damaged in transit")]


def test_adjust_unknown_row(client, admin_headers):
    resp = client.post("/api/inventory/999/adjust", json={"delta": 1, "reason": "Found"}, headers=admin_headers)
    assert resp.status_code == 404


def test_counted_quantity_is_recorded_as_adjustment(client, admin_headers):
    _, _, row = _row(client, admin_headers)
    url = f"/api/inventory/{row['id']}"

    resp = client.put(url, json={"quantity": 12, "min_quantity": 3}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["quantity"] == 12
    assert resp.json()["min_quantity"] == 3
    audit = client.get(f"{url}/adjustments", headers=admin_headers).json()
    assert [(a["delta"], a["reason"]) for a in audit] == [(2, "Manual count correction")]


def test_low_stock(client, admin_headers):
    panel, north, low = _row(client, admin_headers, quantity=2, min_quantity=5)
    inverter = api_product(client, admin_headers, "Inverter", 50)
    api_stock(client, admin_headers, inverter["id"], north["id"], 20, 5)

    rows = client.get("/api/inventory/low-stock", headers=admin_headers).json()
    assert [r["id"] for r in rows] == [low["id"]]


def test_inventory_requires_admin(client, user_headers):
    assert client.get("/api/inventory/", headers=user_headers).status_code == 403
