# tests/test_reservation.py
import pytest

from storefront.database import db as file_db


def _stock(pid):
    return int(file_db.get_record("products", "id", pid)["stock"])


def test_order_decrements_stock(client, catalog, temp_user, place_order):
    resp = place_order(temp_user["headers"], items=[{"product_id": 1, "quantity": 3}])
    assert resp.status_code == 201, resp.text
    assert _stock(1) == 22


def test_insufficient_stock_returns_400_and_no_change(client, catalog, temp_user, place_order, fake_gateway):
    resp = place_order(temp_user["headers"], items=[{"product_id": 3, "quantity": 3}])
    assert resp.status_code == 400, resp.text
    assert "Insufficient stock" in resp.json()["detail"]
    assert _stock(3) == 2
    assert file_db.list_records("orders") == []
    assert fake_gateway.calls == []


def test_shortage_on_later_line_restores_earlier_lines(client, catalog, temp_user, place_order):
    resp = place_order(temp_user["headers"], items=[{"product_id": 2, "quantity": 4}, {"product_id": 3, "quantity": 5}])
    assert resp.status_code == 400
    assert _stock(2) == 50
    assert _stock(3) == 2


def test_stock_restored_when_order_cannot_be_written(client, catalog, temp_user, place_order, monkeypatch):
    real_create = file_db.create_record

    def failing_create(table, data, id_field="id"):
        if table == "orders":
            raise OSError("disk full")
        return real_create(table, data, id_field=id_field)

    monkeypatch.setattr(file_db, "create_record", failing_create)
    with pytest.raises(OSError):
        place_order(temp_user["headers"], items=[{"product_id": 2, "quantity": 2}])
    assert _stock(2) == 50


def test_order_lines_must_be_catalog_products(client, catalog, temp_user, place_order, fake_gateway):
    resp = place_order(temp_user["headers"], payment_method="credit_card",
                       items=[{"product_id": 2, "quantity": 1},
                              {"product_id": 999, "name": "Notebook Pro X", "unit_price": "0.01", "quantity": 1}])
    assert resp.status_code == 404
    assert file_db.list_records("orders") == []
    assert fake_gateway.calls == []
    assert _stock(2) == 50


def test_product_deleted_mid_checkout_restores_stock(client, catalog, temp_user, place_order, monkeypatch):
    real_get = file_db.get_record
    lookups = {"count": 0}

    def get_after_delete(table, key, value):
        # product 3 disappears once the cart has been priced
        if table == "products" and str(value) == "3":
            lookups["count"] += 1
            if lookups["count"] > 1:
                return None
        return real_get(table, key, value)

    monkeypatch.setattr(file_db, "get_record", get_after_delete)
    resp = place_order(temp_user["headers"], items=[{"product_id": 2, "quantity": 2}, {"product_id": 3, "quantity": 1}])
    assert resp.status_code == 404
    assert _stock(2) == 50
