# storefront/api/routes/products.py
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from storefront.api.deps import get_db, require_admin
from storefront.api.schemas.product import ProductCreate, ProductOut, ProductUpdate
from storefront.config import settings
from storefront.core.pricing import apply_percentage_discount, compute_installment, format_currency
from storefront.database import FileBackedDB
from storefront.models.product import Product, slugify
from storefront.services.checkout import PIX, discount_rate
from storefront.utils.images import InvalidImage, delete_product_image, image_url, save_image_upload

router = APIRouter(prefix="/api/products", tags=["products"])


def _image_filenames(row: Dict[str, Any]) -> List[str]:
    raw = row.get("image_filenames") or ""
    if not raw:
        return []
    try:
        names = json.loads(raw)
    except ValueError:
        return [raw]
    return names if isinstance(names, list) else [str(names)]


def product_out(row: Dict[str, Any]) -> ProductOut:
    """Catalog row -> API shape with the pt-BR price strings used on cards and detail pages."""
    product = Product.from_dict(row)
    installments = settings.MAX_INSTALLMENTS
    each = compute_installment(product.price, installments)
    data = product.to_dict()
    data.update(
        price=product.price,
        old_price=product.old_price,
        rating=product.rating,
        weight_kg=product.weight_kg,
        created_at=data.get("created_at") or None,
        price_display=format_currency(product.price),
        old_price_display=format_currency(product.old_price) if product.old_price else None,
        pix_price_display=format_currency(apply_percentage_discount(product.price, discount_rate(PIX))),
        installment={
            "count": installments,
            "amount": each,
            "display": f"{installments}x de {format_currency(each)} sem juros",
        },
        images=[image_url(settings.image_dir, product.id, f) for f in _image_filenames(row)],
    )
    return ProductOut(**data)


def _load_product(db: FileBackedDB, product_id: int) -> Dict[str, Any]:
    row = db.get_record("products", "id", product_id)
    if not row:
        raise HTTPException(status_code=404, detail="Product not found")
    return row


def _category_id_for(db: FileBackedDB, category: str) -> Optional[str]:
    row = db.get_record("categories", "slug", category) or db.get_record("categories", "id", category)
    return str(row.get("id")) if row else None


def _check_slug_free(db: FileBackedDB, slug: str, product_id: Optional[int] = None) -> None:
    other = db.get_record("products", "slug", slug)
    if other and str(other.get("id")) != str(product_id):
        raise HTTPException(status_code=400, detail=f"Slug '{slug}' already in use")


@router.get("", response_model=List[ProductOut])
def list_products(
    q: Optional[str] = Query(None, description="search in name and description"),
    category: Optional[str] = Query(None, description="category slug or id"),
    featured: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: FileBackedDB = Depends(get_db),
):
    """
    List products. Supports substring search via `q` and filtering by category / featured.
    """
    rows = db.list_records("products")
    if category:
        cat_id = _category_id_for(db, category)
        rows = [r for r in rows if cat_id is not None and str(r.get("category_id") or "") == cat_id]
    if q:
        needle = q.lower()
        rows = [r for r in rows if needle in str(r.get("name") or "").lower()
                or needle in str(r.get("description") or "").lower()]
    out = [product_out(r) for r in rows]
    if featured is not None:
        out = [p for p in out if p.featured == featured]
    return out[offset: offset + limit]


@router.get("/featured", response_model=List[ProductOut])
def featured_products(limit: int = Query(8, ge=1, le=100), db: FileBackedDB = Depends(get_db)):
    out = [product_out(r) for r in db.list_records("products")]
    return [p for p in out if p.featured][:limit]


@router.get("/search", response_model=List[ProductOut])
def search_products(q: str = Query("", description="search query"), db: FileBackedDB = Depends(get_db)):
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    return list_products(q=q.strip(), category=None, featured=None, limit=500, offset=0, db=db)


@router.get("/slug/{slug}", response_model=ProductOut)
def get_product_by_slug(slug: str, db: FileBackedDB = Depends(get_db)):
    row = db.get_record("products", "slug", slug)
    if not row:
        raise HTTPException(status_code=404, detail="Product not found")
    return product_out(row)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: FileBackedDB = Depends(get_db)):
    return product_out(_load_product(db, product_id))


@router.post("", response_model=ProductOut, status_code=201)
def create_product(payload: ProductCreate, current_user: dict = Depends(require_admin), db: FileBackedDB = Depends(get_db)):
    """
    Create a new product (admin only). `created_by` is set to current_user['username'].
    """
    slug = payload.slug or slugify(payload.name)
    _check_slug_free(db, slug)
    if payload.category_id is not None and not db.get_record("categories", "id", payload.category_id):
        raise HTTPException(status_code=400, detail="Category not found")
    product = Product.from_dict(dict(payload.model_dump(), slug=slug))
    product.created_by = current_user.get("username")
    product.created_at = datetime.utcnow()
    data = product.to_dict()
    data.pop("id")
    saved = db.create_record("products", data, id_field="id")
    return product_out(saved)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, payload: ProductUpdate, db: FileBackedDB = Depends(get_db),
                   current_user: dict = Depends(require_admin)):
    _load_product(db, product_id)
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("slug"):
        _check_slug_free(db, updates["slug"], product_id)
    if updates.get("category_id") is not None and not db.get_record("categories", "id", updates["category_id"]):
        raise HTTPException(status_code=400, detail="Category not found")
    # decimals stored as strings, never floats
    for k in ("price", "old_price", "weight_kg"):
        if k in updates:
            updates[k] = "" if updates[k] is None else str(updates[k])
    updated = db.update_record("products", "id", product_id, updates)
    return product_out(updated)


@router.delete("/{product_id}")
def delete_product(product_id: int, db: FileBackedDB = Depends(get_db), current_user: dict = Depends(require_admin)):
    if not db.delete_record("products", "id", product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    return {"ok": True}


@router.post("/{product_id}/upload-image")
async def upload_product_image(product_id: int, file: UploadFile = File(...), db: FileBackedDB = Depends(get_db),
                               current_user: dict = Depends(require_admin)):
    """
    Upload an image for a product (admin only).
    Saves original + variants and appends the original's filename to product.image_filenames (JSON list).
    The first image becomes the product's image_url if it has none.
    """
    row = _load_product(db, product_id)
    try:
        saved = await save_image_upload(file, product_id, settings.image_dir)
    except InvalidImage as e:
        raise HTTPException(status_code=400, detail=str(e))

    names = _image_filenames(row) + [saved["original"]]
    updates = {"image_filenames": json.dumps(names)}
    if not row.get("image_url"):
        updates["image_url"] = image_url(settings.image_dir, product_id, saved["original"])
    db.update_record("products", "id", product_id, updates)
    urls = [image_url(settings.image_dir, product_id, f) for f in names]
    return {"ok": True, "filenames": names, "urls": urls, "saved": saved}


@router.get("/{product_id}/images", response_model=List[str])
def get_product_images(product_id: int, db: FileBackedDB = Depends(get_db)):
    """
    List image URLs for a product (public).
    """
    row = _load_product(db, product_id)
    return [image_url(settings.image_dir, product_id, f) for f in _image_filenames(row)]


@router.delete("/{product_id}/images/{filename}")
def delete_product_image_route(product_id: int, filename: str, db: FileBackedDB = Depends(get_db),
                               current_user: dict = Depends(require_admin)):
    """
    Delete an image file and remove it from the product's image_filenames (admin only).
    """
    row = _load_product(db, product_id)
    if not delete_product_image(settings.image_dir, product_id, filename):
        raise HTTPException(status_code=404, detail="File not found or could not be deleted")

    names = [f for f in _image_filenames(row) if f != filename]
    updates = {"image_filenames": json.dumps(names)}
    if row.get("image_url") == image_url(settings.image_dir, product_id, filename):
        updates["image_url"] = image_url(settings.image_dir, product_id, names[0]) if names else ""
    db.update_record("products", "id", product_id, updates)
    return {"ok": True, "remaining": names}
