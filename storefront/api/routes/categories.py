from typing import List

from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_db, require_admin
from storefront.api.routes.products import product_out
from storefront.api.schemas.product import CategoryCreate, CategoryOut, CategoryUpdate, ProductOut
from storefront.database import FileBackedDB
from storefront.models.product import Category, slugify

router = APIRouter(prefix="/api/categories", tags=["categories"])


def _load_by_slug(db: FileBackedDB, slug: str) -> Category:
    row = db.get_record("categories", "slug", slug)
    if not row:
        raise HTTPException(status_code=404, detail="Category not found")
    return Category.from_dict(row)


@router.get("", response_model=List[CategoryOut])
def list_categories(db: FileBackedDB = Depends(get_db)):
    return [Category.from_dict(r).to_dict() for r in db.list_records("categories")]


@router.get("/{slug}", response_model=CategoryOut)
def get_category(slug: str, db: FileBackedDB = Depends(get_db)):
    return _load_by_slug(db, slug).to_dict()


@router.get("/{slug}/products", response_model=List[ProductOut])
def category_products(slug: str, db: FileBackedDB = Depends(get_db)):
    category = _load_by_slug(db, slug)
    return [product_out(r) for r in db.find_records("products", "category_id", category.id)]


@router.post("", response_model=CategoryOut, status_code=201, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryCreate, db: FileBackedDB = Depends(get_db)):
    slug = payload.slug or slugify(payload.name)
    if db.get_record("categories", "slug", slug):
        raise HTTPException(status_code=400, detail=f"Slug '{slug}' already in use")
    data = Category(name=payload.name, slug=slug, icon=payload.icon).to_dict()
    data.pop("id")
    return db.create_record("categories", data, id_field="id")


@router.put("/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_admin)])
def update_category(category_id: int, payload: CategoryUpdate, db: FileBackedDB = Depends(get_db)):
    if not db.get_record("categories", "id", category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "slug" in updates:
        other = db.get_record("categories", "slug", updates["slug"])
        if other and str(other.get("id")) != str(category_id):
            raise HTTPException(status_code=400, detail=f"Slug '{updates['slug']}' already in use")
    row = db.update_record("categories", "id", category_id, updates) if updates else db.get_record("categories", "id", category_id)
    return Category.from_dict(row).to_dict()


@router.delete("/{category_id}", dependencies=[Depends(require_admin)])
def delete_category(category_id: int, db: FileBackedDB = Depends(get_db)):
    """Delete a category. Refused while products still point at it."""
    if db.find_records("products", "category_id", category_id):
        raise HTTPException(status_code=400, detail="Category still has products")
    if not db.delete_record("categories", "id", category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return {"ok": True}
