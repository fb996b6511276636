# tests/test_product_images.py
import io
from pathlib import Path

import pytest

from storefront.config import settings
from storefront.database import db as file_db
from storefront.utils.images import list_product_images


@pytest.fixture
def isolated_image_dir(tmp_path, monkeypatch):
    """Point settings.image_dir at a temp directory and return it as a plain string."""
    image_dir = str(tmp_path / "static_images")
    monkeypatch.setattr(settings, "image_dir", image_dir, raising=False)
    return image_dir


def test_image_upload_list_delete_flow(client, catalog, isolated_image_dir, admin_auth_header, temp_user,
                                       make_sample_jpeg_bytes):
    admin_header = admin_auth_header()
    product_id = 1
    product_dir = Path(isolated_image_dir) / "products" / str(product_id)

    files = {"file": ("notebook.jpg", io.BytesIO(make_sample_jpeg_bytes(size=(1600, 900))), "image/jpeg")}
    up_url = f"/api/products/{product_id}/upload-image"
    resp = client.post(up_url, files=files, headers=admin_header)
    assert resp.status_code == 200, resp.text
    j = resp.json()
    assert j["ok"] is True
    original = j["filenames"][0]
    assert original.endswith(".jpg")
    assert (product_dir / original).exists()

    # one resized copy per size, never larger than the box
    stem = Path(original).stem
    assert sorted(j["saved"]["variants"]) == sorted([f"{stem}_1200x1200.jpg", f"{stem}_300x300.jpg"])
    assert len(list_product_images(isolated_image_dir, product_id)) == 3

    # first image becomes the product's main picture
    row = file_db.get_record("products", "id", product_id)
    assert row["image_url"].endswith(f"/products/1/{original}")
    detail = client.get(f"/api/products/{product_id}").json()
    assert detail["images"] == j["urls"]

    resp = client.get(f"/api/products/{product_id}/images")
    assert resp.status_code == 200, resp.text
    assert any(original in u for u in resp.json())

    # customers cannot upload
    files = {"file": ("notebook.jpg", io.BytesIO(make_sample_jpeg_bytes()), "image/jpeg")}
    resp = client.post(up_url, files=files, headers=temp_user["headers"])
    assert resp.status_code == 403

    resp = client.delete(f"/api/products/{product_id}/images/{original}", headers=admin_header)
    assert resp.status_code == 200, resp.text
    assert original not in resp.json()["remaining"]
    assert not (product_dir / original).exists()
    assert list_product_images(isolated_image_dir, product_id) == []
    assert file_db.get_record("products", "id", product_id)["image_url"] == ""

    resp = client.delete(f"/api/products/{product_id}/images/{original}", headers=admin_header)
    assert resp.status_code == 404


def test_upload_rejects_non_images(client, catalog, isolated_image_dir, admin_auth_header):
    files = {"file": ("virus.jpg", io.BytesIO(b"definitely not a jpeg"), "image/jpeg")}
    resp = client.post("/api/products/1/upload-image", files=files, headers=admin_auth_header())
    assert resp.status_code == 400
    assert list_product_images(isolated_image_dir, 1) == []


def test_upload_to_missing_product_is_404(client, catalog, isolated_image_dir, admin_auth_header, make_sample_jpeg_bytes):
    files = {"file": ("a.jpg", io.BytesIO(make_sample_jpeg_bytes()), "image/jpeg")}
    resp = client.post("/api/products/99/upload-image", files=files, headers=admin_auth_header())
    assert resp.status_code == 404
