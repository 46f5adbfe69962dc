from conftest import api_order, api_product, api_stock, api_warehouse


def _setup(client, headers, stock=10):
    panel = api_product(client, headers, "Panel 400W", 100)
    north = api_warehouse(client, headers, "North")
    row = api_stock(client, headers, panel["id"], north["id"], stock)
    return panel, north, row


def _quantity(client, headers, row):
    return client.get(f"/api/inventory/{row['id']}", headers=headers).json()["quantity"]


def _merge_body(primary, duplicate, status="Complete", total=360, **extra):
    return {
        "primaryOrderId": primary["id"],
        "duplicateOrderId": duplicate["id"],
        "mergedData": {
            "contact_id": 1,
            "status": status,
            "total": total,
            "order_date": "2025-06-01",
            "notes": "merged",
            **extra,
        },
    }


def test_orders_require_token(client):
    resp = client.get("/api/orders/")
    assert resp.status_code == 401


def test_orders_reject_invalid_token(client):
    resp = client.get("/api/orders/", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_orders_reject_non_admin(client, user_headers):
    resp = client.get("/api/orders/", headers=user_headers)
    assert resp.status_code == 403


def test_create_and_fetch_order(client, admin_headers):
    panel, north, _ = _setup(client, admin_headers)
    order = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 95.5, "warehouse_id": north["id"]},
    ], notes="Roof install")

    assert order["total"] == 191.0
    assert order["status"] == "Proposed"

    resp = client.get(f"/api/orders/{order['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["items"][0]["quantity"] == 2

    listed = client.get("/api/orders/", params={"status": "Proposed"}, headers=admin_headers).json()
    assert [o["id"] for o in listed] == [order["id"]]


def test_create_order_with_unknown_product(client, admin_headers):
    resp = client.post(
        "/api/orders/",
        json={"contact_id": 1, "items": [{"product_id": 404, "quantity": 1, "price": 1}]},
        headers=admin_headers,
    )
    assert resp.status_code == 404
    assert "404" in resp.json()["error"]


def test_create_order_rejects_zero_quantity(client, admin_headers):
    panel, _, _ = _setup(client, admin_headers)
    resp = client.post(
        "/api/orders/",
        json={"contact_id": 1, "items": [{"product_id": panel["id"], "quantity": 0, "price": 1}]},
        headers=admin_headers,
    )
    assert resp.status_code == 422


def test_created_complete_order_deducts_stock(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 4, "price": 100, "warehouse_id": north["id"]},
    ], status="Complete")
    assert _quantity(client, admin_headers, row) == 6


def test_complete_is_idempotent_and_leaving_it_restores(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    order = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 3, "price": 100, "warehouse_id": north["id"]},
    ])
    url = f"/api/orders/{order['id']}"

    assert client.put(url, json={"status": "Complete"}, headers=admin_headers).status_code == 200
    assert _quantity(client, admin_headers, row) == 7

    assert client.put(url, json={"status": "Complete", "notes": "again"}, headers=admin_headers).status_code == 200
    assert _quantity(client, admin_headers, row) == 7

    assert client.put(url, json={"status": "Scheduled"}, headers=admin_headers).status_code == 200
    assert _quantity(client, admin_headers, row) == 10


def test_completing_without_stock_is_rejected(client, admin_headers):
    panel, north, row = _setup(client, admin_headers, stock=1)
    order = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 100, "warehouse_id": north["id"]},
    ])

    resp = client.put(f"/api/orders/{order['id']}", json={"status": "Complete"}, headers=admin_headers)

    assert resp.status_code == 400
    assert resp.json()["details"] == ["Insufficient inventory for Panel 400W (North). Required: 2, Available: 1"]
    assert client.get(f"/api/orders/{order['id']}", headers=admin_headers).json()["status"] == "Proposed"
    assert _quantity(client, admin_headers, row) == 1


def test_replacing_items_recomputes_total(client, admin_headers):
    panel, north, _ = _setup(client, admin_headers)
    order = api_order(client, admin_headers, [{"product_id": panel["id"], "quantity": 1, "price": 100}])

    resp = client.put(
        f"/api/orders/{order['id']}",
        json={"items": [{"product_id": panel["id"], "quantity": 3, "price": 90, "warehouse_id": north["id"]}]},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["total"] == 270.0
    assert len(resp.json()["items"]) == 1


def test_delete_order(client, admin_headers):
    panel, _, _ = _setup(client, admin_headers)
    order = api_order(client, admin_headers, [{"product_id": panel["id"], "quantity": 1, "price": 100}])

    assert client.delete(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 404


def test_merge_into_complete_deducts_combined_quantity(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 1, "price": 100, "warehouse_id": north["id"]},
    ])
    b = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 120, "warehouse_id": north["id"]},
    ])

    resp = client.post("/api/orders/merge", json=_merge_body(a, b), headers=admin_headers)

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Orders merged successfully"
    merged = body["mergedOrder"]
    assert merged["id"] == a["id"]
    assert merged["status"] == "Complete"
    assert [(i["quantity"], i["price"]) for i in merged["items"]] == [(3, 120.0)]
    assert _quantity(client, admin_headers, row) == 7
    assert client.get(f"/api/orders/{b['id']}", headers=admin_headers).status_code == 404


def test_merge_rejected_when_stock_is_short(client, admin_headers):
    panel, north, row = _setup(client, admin_headers, stock=1)
    a = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 1, "price": 100, "warehouse_id": north["id"]},
    ])
    b = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 120, "warehouse_id": north["id"]},
    ])

    resp = client.post("/api/orders/merge", json=_merge_body(a, b), headers=admin_headers)

    assert resp.status_code == 400
    details = resp.json()["details"]
    assert len(details) == 1
    assert "Panel 400W" in details[0]
    assert "Required: 3, Available: 1" in details[0]
    assert client.get(f"/api/orders/{a['id']}", headers=admin_headers).json()["items"][0]["quantity"] == 1
    assert client.get(f"/api/orders/{b['id']}", headers=admin_headers).status_code == 200
    assert _quantity(client, admin_headers, row) == 1


def test_merge_into_complete_requires_warehouses(client, admin_headers):
    panel, _, row = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [{"product_id": panel["id"], "quantity": 1, "price": 100}])
    b = api_order(client, admin_headers, [{"product_id": panel["id"], "quantity": 1, "price": 100}])

    resp = client.post("/api/orders/merge", json=_merge_body(a, b, total=200), headers=admin_headers)

    assert resp.status_code == 400
    assert "warehouse" in resp.json()["error"]
    assert _quantity(client, admin_headers, row) == 10


def test_merge_fills_missing_warehouse(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [{"product_id": panel["id"], "quantity": 1, "price": 100}])
    b = api_order(client, admin_headers, [{"product_id": panel["id"], "quantity": 1, "price": 100}])

    resp = client.post(
        "/api/orders/merge",
        json=_merge_body(a, b, total=200, warehouse_id=north["id"]),
        headers=admin_headers,
    )

    assert resp.status_code == 200, resp.text
    assert [i["warehouse_id"] for i in resp.json()["mergedOrder"]["items"]] == [north["id"]]
    assert _quantity(client, admin_headers, row) == 8


def test_merge_out_of_complete_restores_primary_lines(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 100, "warehouse_id": north["id"]},
    ], status="Complete")
    b = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 1, "price": 100, "warehouse_id": north["id"]},
    ])
    assert _quantity(client, admin_headers, row) == 8

    resp = client.post("/api/orders/merge", json=_merge_body(a, b, status="Scheduled"), headers=admin_headers)

    assert resp.status_code == 200
    assert _quantity(client, admin_headers, row) == 10


def test_merge_requires_admin(client, user_headers):
    resp = client.post("/api/orders/merge", json={"primaryOrderId": 1, "duplicateOrderId": 2}, headers=user_headers)
    assert resp.status_code == 403


def test_merge_requires_both_ids(client, admin_headers):
    resp = client.post("/api/orders/merge", json={"primaryOrderId": 1}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing required fields"


def test_merge_rejects_same_order(client, admin_headers):
    panel, _, _ = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [{"product_id": panel["id"], "quantity": 1, "price": 100}])
    resp = client.post("/api/orders/merge", json={"primaryOrderId": a["id"], "duplicateOrderId": a["id"]},
                       headers=admin_headers)
    assert resp.status_code == 400


def test_merge_unknown_order(client, admin_headers):
    panel, _, _ = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [{"product_id": panel["id"], "quantity": 1, "price": 100}])
    resp = client.post("/api/orders/merge", json={"primaryOrderId": a["id"], "duplicateOrderId": 999},
                       headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "One or both orders not found"


def test_items_of_complete_order_cannot_be_replaced(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    order = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 100, "warehouse_id": north["id"]},
    ], status="Complete")
    url = f"/api/orders/{order['id']}"
    assert _quantity(client, admin_headers, row) == 8

    resp = client.put(
        url,
        json={"items": [{"product_id": panel["id"], "quantity": 6, "price": 100, "warehouse_id": north["id"]}]},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert client.get(url, headers=admin_headers).json()["items"][0]["quantity"] == 2
    assert _quantity(client, admin_headers, row) == 8

    assert client.put(url, json={"status": "Proposed"}, headers=admin_headers).status_code == 200
    assert _quantity(client, admin_headers, row) == 10


def test_items_can_be_replaced_while_leaving_complete(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    order = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 100, "warehouse_id": north["id"]},
    ], status="Complete")

    resp = client.put(
        f"/api/orders/{order['id']}",
        json={"status": "Scheduled",
              "items": [{"product_id": panel["id"], "quantity": 6, "price": 100, "warehouse_id": north["id"]}]},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert _quantity(client, admin_headers, row) == 10


def test_merging_complete_duplicate_into_complete_deducts_only_primary(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 1, "price": 100, "warehouse_id": north["id"]},
    ])
    b = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 120, "warehouse_id": north["id"]},
    ], status="Complete")
    assert _quantity(client, admin_headers, row) == 8

    resp = client.post("/api/orders/merge", json=_merge_body(a, b), headers=admin_headers)

    assert resp.status_code == 200, resp.text
    assert _quantity(client, admin_headers, row) == 7

    # Leaving Complete later gives back all three units
    url = f"/api/orders/{a['id']}"
    assert client.put(url, json={"status": "Scheduled"}, headers=admin_headers).status_code == 200
    assert _quantity(client, admin_headers, row) == 10


def test_merging_complete_duplicate_out_of_complete_restores_it(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 1, "price": 100, "warehouse_id": north["id"]},
    ])
    b = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 120, "warehouse_id": north["id"]},
    ], status="Complete")
    assert _quantity(client, admin_headers, row) == 8

    resp = client.post("/api/orders/merge", json=_merge_body(a, b, status="Proposed"), headers=admin_headers)

    assert resp.status_code == 200, resp.text
    assert _quantity(client, admin_headers, row) == 10


def test_merging_two_complete_orders_moves_no_stock(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 1, "price": 100, "warehouse_id": north["id"]},
    ], status="Complete")
    b = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 120, "warehouse_id": north["id"]},
    ], status="Complete")
    assert _quantity(client, admin_headers, row) == 7

    resp = client.post("/api/orders/merge", json=_merge_body(a, b), headers=admin_headers)

    assert resp.status_code == 200, resp.text
    assert _quantity(client, admin_headers, row) == 7


def test_merging_into_complete_primary_deducts_the_duplicate(client, admin_headers):
    panel, north, row = _setup(client, admin_headers)
    a = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 1, "price": 100, "warehouse_id": north["id"]},
    ], status="Complete")
    b = api_order(client, admin_headers, [
        {"product_id": panel["id"], "quantity": 2, "price": 120, "warehouse_id": north["id"]},
    ])

    resp = client.post("/api/orders/merge", json=_merge_body(a, b), headers=admin_headers)

    assert resp.status_code == 200, resp.text
    assert _quantity(client, admin_headers, row) == 7
