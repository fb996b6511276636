def _order_for(place_order, headers):
    resp = place_order(headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["order"]["id"]


def test_customer_cannot_mark_own_order_paid(client, catalog, temp_user, place_order):
    oid = _order_for(place_order, temp_user["headers"])
    resp = client.post(f"/api/orders/{oid}/transition", json={"status": "paid"}, headers=temp_user["headers"])
    assert resp.status_code == 403


def test_admin_moves_order_through_fulfilment(client, catalog, temp_user, place_order, admin_auth_header):
    oid = _order_for(place_order, temp_user["headers"])
    admin = admin_auth_header()

    for target in ("paid", "shipped", "delivered"):
        resp = client.post(f"/api/orders/{oid}/transition", json={"status": target}, headers=admin)
        assert resp.status_code == 200, resp.text
        assert resp.json()["order"]["status"] == target

    detail = client.get(f"/api/orders/{oid}", headers=temp_user["headers"]).json()
    assert [h["to"] for h in detail["status_history"]] == ["paid", "shipped", "delivered"]
    assert all(h["actor"] == "admin" for h in detail["status_history"])
    assert int(detail["version"]) == 3
    assert detail["allowed_transitions"] == []


def test_invalid_transition_returns_400(client, catalog, temp_user, place_order, admin_auth_header):
    oid = _order_for(place_order, temp_user["headers"])
    resp = client.post(f"/api/orders/{oid}/transition", json={"status": "delivered"}, headers=admin_auth_header())
    assert resp.status_code == 400
    resp = client.post(f"/api/orders/{oid}/transition", json={"status": "  "}, headers=admin_auth_header())
    assert resp.status_code == 400


def test_stale_version_returns_409(client, catalog, temp_user, place_order, admin_auth_header):
    oid = _order_for(place_order, temp_user["headers"])
    admin = admin_auth_header()
    resp = client.post(f"/api/orders/{oid}/transition", json={"status": "paid", "expected_version": 0}, headers=admin)
    assert resp.status_code == 200
    resp = client.post(f"/api/orders/{oid}/transition", json={"status": "shipped", "expected_version": 0}, headers=admin)
    assert resp.status_code == 409


def test_other_customers_cannot_touch_order(client, catalog, temp_user, user_headers, place_order):
    oid = _order_for(place_order, temp_user["headers"])
    resp = client.post(f"/api/orders/{oid}/transition", json={"status": "cancelled"}, headers=user_headers())
    assert resp.status_code == 403
    assert client.post("/api/orders/99/transition", json={"status": "cancelled"},
                       headers=temp_user["headers"]).status_code == 404


def test_admin_status_endpoint(client, catalog, temp_user, place_order, admin_auth_header):
    oid = _order_for(place_order, temp_user["headers"])
    admin = admin_auth_header()
    assert client.put(f"/api/orders/{oid}/status", json={"status": "paid"}, headers=temp_user["headers"]).status_code == 403
    resp = client.put(f"/api/orders/{oid}/status", json={"status": "paid"}, headers=admin)
    assert resp.status_code == 200, resp.text
    assert resp.json()["order"]["status"] == "paid"
    assert client.put(f"/api/orders/{oid}/status", json={"status": "pending"}, headers=admin).status_code == 400
