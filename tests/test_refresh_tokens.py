# tests/test_refresh_tokens.py
from datetime import datetime, timedelta

from storefront import database as app_database


def test_token_includes_refresh_token(client, register_and_token):
    register_and_token(username="refresh_user")
    r = client.post("/api/auth/token", data={"username": "refresh_user", "password": "pass123"})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["access_token"]
    assert data["refresh_token"]
    stored = app_database.db.get_record("refresh_tokens", "token", data["refresh_token"])
    assert stored is not None


def test_refresh_rotates_tokens(client, register_and_token):
    register_and_token(username="rotater")
    r = client.post("/api/auth/token", data={"username": "rotater", "password": "pass123"})
    old_refresh = r.json()["refresh_token"]

    r = client.post("/api/auth/refresh", json={"refresh_token": old_refresh})
    assert r.status_code == 200, r.text
    new_refresh = r.json()["refresh_token"]
    assert r.json()["access_token"]
    assert new_refresh != old_refresh

    # the old token was consumed
    r = client.post("/api/auth/refresh", json={"refresh_token": old_refresh})
    assert r.status_code == 401

    # form bodies work too
    r = client.post("/api/auth/refresh", data={"refresh_token": new_refresh})
    assert r.status_code == 200, r.text


def test_refresh_via_cookie(client, temp_user):
    resp = client.post("/api/auth/login", data={"username": temp_user["username"], "password": temp_user["password"]})
    assert resp.status_code == 200, resp.text
    first = client.cookies.get("refresh_token")
    assert first

    r = client.post("/api/auth/refresh", json={})
    assert r.status_code == 200, r.text
    assert r.json()["access_token"]
    assert client.cookies.get("refresh_token") != first


def test_refresh_without_token_is_401(client):
    assert client.post("/api/auth/refresh").status_code == 401
    assert client.post("/api/auth/refresh", json={"refresh_token": "unknown"}).status_code == 401


def test_malformed_json_is_400(client):
    r = client.post("/api/auth/refresh", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400


def test_expired_refresh_token_is_rejected(client):
    db = app_database.db
    token = "expired_refresh_token_test"
    past = datetime.utcnow() - timedelta(days=7)
    db.create_record(
        "refresh_tokens",
        {"token": token, "user_id": "noone", "created_at": past.isoformat(sep=" "), "expires_at": past.isoformat(sep=" ")},
        id_field="id",
    )

    r = client.post("/api/auth/refresh", json={"refresh_token": token})
    assert r.status_code == 401, r.text
    # expired records are purged
    assert db.get_record("refresh_tokens", "token", token) is None
