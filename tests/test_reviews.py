from storefront.database import db as file_db


def test_create_review_success(client, catalog, temp_user):
    resp = client.post("/api/products/2/reviews", json={"rating": 5, "title": "Ótimo", "comment": "Chegou rápido"},
                       headers=temp_user["headers"])
    assert resp.status_code == 201, resp.text
    created = resp.json()
    assert created["product_id"] == 2
    assert created["user_id"] == str(temp_user["row"]["id"])
    assert created["username"] == temp_user["username"]
    assert created["is_verified"] is False
    assert created["id"]

    product = client.get("/api/products/2").json()
    assert product["rating"] == "5.00"
    assert product["review_count"] == 1


def test_create_review_invalid_rating(client, catalog, temp_user):
    for rating in (0, 6, 10):
        resp = client.post("/api/products/2/reviews", json={"rating": rating}, headers=temp_user["headers"])
        assert resp.status_code == 422


def test_review_needs_login_and_product(client, catalog, temp_user):
    assert client.post("/api/products/2/reviews", json={"rating": 4}).status_code == 401
    assert client.post("/api/products/99/reviews", json={"rating": 4}, headers=temp_user["headers"]).status_code == 404


def test_one_review_per_user(client, catalog, temp_user):
    assert client.post("/api/products/2/reviews", json={"rating": 4}, headers=temp_user["headers"]).status_code == 201
    assert client.post("/api/products/2/reviews", json={"rating": 1}, headers=temp_user["headers"]).status_code == 400


def test_summary_and_listing(client, catalog, temp_user, user_headers):
    client.post("/api/products/1/reviews", json={"rating": 5, "title": "primeira"}, headers=temp_user["headers"])
    client.post("/api/products/1/reviews", json={"rating": 4, "title": "segunda"}, headers=user_headers())
    client.post("/api/products/1/reviews", json={"rating": 4, "title": "terceira"}, headers=user_headers())

    summary = client.get("/api/products/1/reviews/summary").json()
    assert summary["count"] == 3
    assert summary["average"] == "4.33"
    assert summary["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 2, "5": 1}

    listing = client.get("/api/products/1/reviews").json()
    assert [r["title"] for r in listing] == ["terceira", "segunda", "primeira"]

    empty = client.get("/api/products/2/reviews/summary").json()
    assert empty == {"count": 0, "average": "0.00", "distribution": {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}}


def test_verified_purchase(client, catalog, temp_user, place_order, admin_auth_header):
    order_id = place_order(temp_user["headers"], items=[{"product_id": 2, "quantity": 1}]).json()["order"]["id"]

    # still pending: not verified yet
    r = client.post("/api/products/2/reviews", json={"rating": 5, "order_id": order_id}, headers=temp_user["headers"])
    assert r.json()["is_verified"] is False
    client.delete(f"/api/products/2/reviews/{r.json()['id']}", headers=temp_user["headers"])

    client.put(f"/api/orders/{order_id}/status", json={"status": "paid"}, headers=admin_auth_header())
    r = client.post("/api/products/2/reviews", json={"rating": 5, "order_id": order_id}, headers=temp_user["headers"])
    assert r.status_code == 201
    assert r.json()["is_verified"] is True

    # the order did not contain product 1
    r = client.post("/api/products/1/reviews", json={"rating": 5, "order_id": order_id}, headers=temp_user["headers"])
    assert r.json()["is_verified"] is False


def test_delete_review_permissions(client, catalog, temp_user, user_headers, admin_auth_header):
    review_id = client.post("/api/products/2/reviews", json={"rating": 2}, headers=temp_user["headers"]).json()["id"]

    assert client.delete(f"/api/products/2/reviews/{review_id}", headers=user_headers()).status_code == 403
    assert client.delete(f"/api/products/1/reviews/{review_id}", headers=temp_user["headers"]).status_code == 400
    assert client.delete(f"/api/products/2/reviews/{review_id}", headers=admin_auth_header()).status_code == 204
    assert file_db.get_record("reviews", "id", review_id) is None
    assert client.get("/api/products/2").json()["review_count"] == 0
    assert client.delete(f"/api/products/2/reviews/{review_id}", headers=temp_user["headers"]).status_code == 404
