# storefront/api/routes/admin.py
import logging
from collections import Counter
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.templating import Jinja2Templates

from storefront.api.deps import get_db, require_admin
from storefront.api.schemas.admin import SiteSettings, SiteSettingsUpdate
from storefront.api.schemas.user import AdminUserUpdate, UserOut
from storefront.core.pricing import format_currency, round_money
from storefront.database import FileBackedDB
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.models.user import User

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])
page_router = APIRouter(tags=["admin"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[2] / "templates"))
logger = logging.getLogger(__name__)

REVENUE_STATUSES = ("paid", "shipped", "delivered")
LOW_STOCK_THRESHOLD = 5


def dashboard_stats(db: FileBackedDB) -> Dict[str, Any]:
    orders = [Order.from_dict(r) for r in db.list_records("orders")]
    products = [Product.from_dict(r) for r in db.list_records("products")]
    revenue = sum((o.total_amount for o in orders if o.status in REVENUE_STATUSES), Decimal("0"))
    recent = sorted(orders, key=lambda o: o.created_at or datetime.min, reverse=True)[:5]
    return {
        "orders": {
            "total": len(orders),
            "by_status": dict(Counter(o.status for o in orders)),
        },
        "revenue": str(round_money(revenue)),
        "revenue_display": format_currency(revenue),
        "users": len(db.list_records("users")),
        "products": len(products),
        "low_stock": [
            {"id": p.id, "name": p.name, "stock": p.stock}
            for p in products if p.stock < LOW_STOCK_THRESHOLD
        ],
        "recent_orders": [
            {
                "id": o.id,
                "customer_name": o.customer_name,
                "status": o.status,
                "total_display": format_currency(o.total_amount),
            }
            for o in recent
        ],
    }


@router.get("/dashboard")
def dashboard(db: FileBackedDB = Depends(get_db)):
    return dashboard_stats(db)


@router.get("/users", response_model=List[UserOut])
def list_users(db: FileBackedDB = Depends(get_db)):
    return [User.from_dict(r).mask_secret() for r in db.list_records("users")]


@router.put("/users/{user_id}", response_model=UserOut)
def update_user(user_id: str, payload: AdminUserUpdate, db: FileBackedDB = Depends(get_db),
                admin_user: Dict[str, Any] = Depends(require_admin)):
    """Change a user's role or active flag. Admins cannot demote or disable themselves."""
    if not db.get_record("users", "id", user_id):
        raise HTTPException(status_code=404, detail="User not found")
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if str(admin_user.get("id")) == str(user_id) and (updates.get("role") == "customer" or updates.get("is_active") is False):
        raise HTTPException(status_code=400, detail="You cannot demote or disable your own account")
    if "role" in updates:
        updates["is_admin"] = updates["role"] == "admin"
    row = db.update_record("users", "id", user_id, updates) if updates else db.get_record("users", "id", user_id)
    logger.info("Admin %s updated user %s: %s", admin_user.get("username"), user_id, sorted(updates))
    return User.from_dict(row).mask_secret()


def _load_site_settings(db: FileBackedDB) -> SiteSettings:
    rows = db.list_records("site_settings")
    if not rows:
        return SiteSettings()
    return SiteSettings(**{k: v for k, v in rows[0].items() if v != ""})


def _store_site_settings(db: FileBackedDB, site: SiteSettings) -> SiteSettings:
    data = site.model_dump()
    data["updated_at"] = datetime.utcnow().isoformat(sep=" ")
    rows = db.list_records("site_settings")
    if rows:
        db.update_record("site_settings", "id", rows[0]["id"], data)
    else:
        db.create_record("site_settings", data, id_field="id")
    return site


@router.get("/settings", response_model=SiteSettings)
def get_site_settings(db: FileBackedDB = Depends(get_db)):
    return _load_site_settings(db)


@router.post("/settings")
def update_site_settings(payload: SiteSettingsUpdate, db: FileBackedDB = Depends(get_db)):
    current = _load_site_settings(db)
    merged = current.model_copy(update=payload.model_dump(exclude_unset=True, exclude_none=True))
    saved = _store_site_settings(db, SiteSettings(**merged.model_dump()))
    return {"ok": True, "message": "Configurações salvas com sucesso", "settings": saved.model_dump()}


@router.post("/reset-settings")
def reset_site_settings(db: FileBackedDB = Depends(get_db)):
    saved = _store_site_settings(db, SiteSettings())
    return {"ok": True, "message": "Configurações restauradas com sucesso", "settings": saved.model_dump()}


@page_router.get("/admin", include_in_schema=False)
def admin_index(request: Request, db: FileBackedDB = Depends(get_db), admin_user: Dict[str, Any] = Depends(require_admin)):
    """Back-office landing page. The browser session authenticates via the access_token cookie."""
    return templates.TemplateResponse(request, "admin.html", {
        "stats": dashboard_stats(db),
        "site": _load_site_settings(db),
        "admin": admin_user,
    })
