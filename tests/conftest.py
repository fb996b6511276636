# tests/conftest.py
import os
import sys
import tempfile
import shutil
from pathlib import Path
from datetime import datetime
import io
from PIL import Image

import pytest
from fastapi.testclient import TestClient

# ensure project root is importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# create a dedicated temp data dir at import time so all imports (config/database/main)
# pick up the test DATA_DIR before they are imported by tests
_tmp_data_dir = tempfile.mkdtemp(prefix="test_data_")
from storefront import config as app_config  # keep after tmpdir creation
app_config.settings.DATA_DIR = Path(_tmp_data_dir)
# tests never talk to the real gateway
app_config.settings.MERCADOPAGO_ACCESS_TOKEN = ""

# import database module after overriding settings so it initializes against tmp dir
from storefront import database as app_database
app_database.DATA_DIR = Path(_tmp_data_dir)
app_database.DATA_DIR.mkdir(parents=True, exist_ok=True)
app_database.db.data_dir = Path(_tmp_data_dir)

# now import the FastAPI app
from storefront.main import app  # noqa: E402

from storefront.api.deps import get_gateway  # noqa: E402
from storefront.core.security import create_access_token, hash_password  # noqa: E402
from storefront.services.payment import PaymentError  # noqa: E402


@pytest.fixture(autouse=True)
def temp_data_dir():
    """
    Every test starts from an empty data directory.
    """
    yield Path(_tmp_data_dir)
    for p in Path(_tmp_data_dir).iterdir():
        if p.is_dir():
            shutil.rmtree(p)
        else:
            p.unlink()


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_tmp_data_dir, ignore_errors=True)


@pytest.fixture
def db():
    return app_database.db


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_header():
    """
    Helper that returns a callable to build Authorization header from a token.
    Usage: hdr = auth_header(token)
    """
    def _h(tok: str):
        return {"Authorization": f"Bearer {tok}"}
    return _h


@pytest.fixture
def register_and_token(client):
    """
    Register a user via the API and return the access token.
    Usage: token = register_and_token(username="u", email=None, password="pw")
    """
    def _fn(username="user", email=None, password="pass123"):
        if email is None:
            email = f"{username}@example.com"
        r = client.post("/api/auth/register", json={"username": username, "email": email, "password": password})
        assert r.status_code in (200, 201), r.text
        r2 = client.post("/api/auth/token", data={"username": username, "password": password})
        assert r2.status_code == 200, r2.text
        return r2.json().get("access_token")
    return _fn


@pytest.fixture
def token_for(client):
    """
    Obtain an OAuth token for an existing username/password.
    Usage: token = token_for(username, password)
    """
    def _fn(username: str, password: str):
        resp = client.post("/api/auth/token", data={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json().get("access_token")
    return _fn


def create_admin_in_db(username="admin", password="adminpass", email="admin@example.com"):
    """
    Utility to create an admin user in the file-backed DB.
    Returns the created row dict.
    """
    existing = app_database.db.get_record("users", "username", username)
    if existing:
        return existing
    return app_database.db.create_record(
        "users",
        {"username": username, "email": email, "password_hash": hash_password(password), "role": "admin",
         "is_active": True, "created_at": datetime.utcnow().isoformat(sep=" ")},
        id_field="id",
    )


def create_user_in_db(username=None, password="testpass", role="customer"):
    username = username or f"user_{os.urandom(4).hex()}"
    return app_database.db.create_record(
        "users",
        {"username": username, "email": f"{username}@example.com", "password_hash": hash_password(password),
         "role": role, "is_active": True, "full_name": "Maria Silva",
         "created_at": datetime.utcnow().isoformat(sep=" ")},
        id_field="id",
    )


@pytest.fixture
def admin_auth_header():
    """
    Create admin in DB (if not present) and return an Authorization header for admin.
    Usage: hdr = admin_auth_header()
    """
    def _fn(username="admin", password="adminpass", email="admin@example.com"):
        row = create_admin_in_db(username=username, password=password, email=email)
        return {"Authorization": f"Bearer {create_access_token(str(row['id']))}"}
    return _fn


@pytest.fixture
def seeded_admin():
    return create_admin_in_db()


@pytest.fixture
def temp_user():
    """
    Create a temporary customer and yield its details.
    Returns {"row", "password", "username", "email", "headers"}.
    """
    password = "testpass"
    user = create_user_in_db(password=password)
    yield {
        "row": user,
        "password": password,
        "username": user.get("username"),
        "email": user.get("email"),
        "headers": {"Authorization": f"Bearer {create_access_token(str(user['id']))}"},
    }


@pytest.fixture
def user_headers():
    """Callable creating a fresh customer and returning its Authorization header."""
    def _fn(username=None):
        user = create_user_in_db(username=username)
        return {"Authorization": f"Bearer {create_access_token(str(user['id']))}"}
    return _fn


@pytest.fixture
def make_sample_jpeg_bytes():
    """
    Return a callable that generates JPEG bytes for tests that need image uploads.
    Usage: jpg = make_sample_jpeg_bytes(size=(200,200))
    """
    def _fn(size=(200, 200), color=(180, 120, 60)):
        bio = io.BytesIO()
        im = Image.new("RGB", size, color)
        im.save(bio, format="JPEG", quality=85)
        bio.seek(0)
        return bio.read()
    return _fn


@pytest.fixture
def catalog():
    """
    Seed two categories and three products. Returns {"categories": [...], "products": [...]}
    with the stored rows (products get ids 1, 2, 3).
    """
    db = app_database.db
    categories = [
        db.create_record("categories", {"name": "Notebooks", "slug": "notebooks", "icon": "laptop"}),
        db.create_record("categories", {"name": "Periféricos", "slug": "perifericos", "icon": "keyboard"}),
    ]
    now = datetime.utcnow().isoformat(sep=" ")
    products = [
        db.create_record("products", {
            "name": "Notebook Pro X", "slug": "notebook-pro-x", "description": "Intel Core i7, 16GB RAM",
            "price": "4999.00", "old_price": "5899.00", "discount_percentage": 15, "image_url": "",
            "category_id": 1, "stock": 25, "featured": True, "sku": "NB-PRO-X", "rating": "0",
            "review_count": 0, "weight_kg": "1.8", "created_at": now,
        }),
        db.create_record("products", {
            "name": "Mouse Gamer RGB", "slug": "mouse-gamer-rgb", "description": "Sensor óptico de 12000 DPI",
            "price": "99.90", "old_price": "", "discount_percentage": "", "image_url": "",
            "category_id": 2, "stock": 50, "featured": False, "sku": "MS-GMR", "rating": "0",
            "review_count": 0, "weight_kg": "0.2", "created_at": now,
        }),
        db.create_record("products", {
            "name": "Teclado Mecânico", "slug": "teclado-mecanico", "description": "Switches Blue, ABNT2",
            "price": "50.10", "old_price": "", "discount_percentage": "", "image_url": "",
            "category_id": 2, "stock": 2, "featured": True, "sku": "KB-MEC", "rating": "0",
            "review_count": 0, "weight_kg": "", "created_at": now,
        }),
    ]
    return {"categories": categories, "products": products}


class FakeGateway:
    """Records every call; answers like Mercado Pago would. Set `fail` to make calls raise PaymentError."""

    mock_mode = False

    def __init__(self):
        self.calls = []
        self.payments = {}
        self.fail = False

    def create_preference(self, items, buyer, back_urls, order_id):
        self.calls.append(("create_preference", items, buyer, back_urls, order_id))
        if self.fail:
            raise PaymentError("Mercado Pago returned 500")
        return {"id": f"pref-{order_id}", "init_point": f"https://mp.test/checkout/{order_id}",
                "sandbox_init_point": "#"}

    def create_pix_payment(self, amount, buyer, description, order_id):
        self.calls.append(("create_pix_payment", amount, buyer, description, order_id))
        if self.fail:
            raise PaymentError("Mercado Pago returned 500")
        return {
            "id": f"pix-{order_id}",
            "status": "pending",
            "transaction_amount": str(amount),
            "external_reference": str(order_id),
            "point_of_interaction": {"transaction_data": {"qr_code": "000201", "qr_code_base64": "", "ticket_url": "#"}},
        }

    def get_payment(self, payment_id):
        self.calls.append(("get_payment", payment_id))
        if payment_id not in self.payments:
            raise PaymentError("Mercado Pago returned 404")
        return self.payments[payment_id]


@pytest.fixture
def fake_gateway():
    gateway = FakeGateway()
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.pop(get_gateway, None)


BUYER = {
    "name": "Maria Silva",
    "email": "maria@example.com",
    "phone": "(11) 99999-8888",
    "document": "123.456.789-09",
    "address": "Rua das Flores",
    "number": "100",
    "complement": "Apto 12",
    "neighborhood": "Centro",
    "city": "São Paulo",
    "state": "sp",
    "zip_code": "01001-000",
}


@pytest.fixture
def buyer():
    return dict(BUYER)


@pytest.fixture
def place_order(client, fake_gateway):
    """
    Submit a checkout through the API with inline items.
    Usage: resp = place_order(headers, items=[{"product_id": 2, "quantity": 1}], payment_method="pix")
    """
    def _fn(headers, items=None, shipping_method="standard", payment_method="pix", buyer=None, cart_id=None):
        payload = {
            "shipping_method": shipping_method,
            "payment_method": payment_method,
            "buyer": buyer or dict(BUYER),
        }
        if cart_id:
            payload["cart_id"] = cart_id
        else:
            payload["items"] = items if items is not None else [{"product_id": 2, "quantity": 1}]
        return client.post("/api/orders", json=payload, headers=headers)
    return _fn
