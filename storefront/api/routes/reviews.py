from typing import List, Dict, Any
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Response, status

from storefront.api.deps import get_db, get_current_active_user, require_admin
from storefront.api.schemas.reviews import ResponseCreate, ReviewCreate
from storefront.core.pricing import round_money
from storefront.database import FileBackedDB
from storefront.models.order import Order

router = APIRouter(prefix="/api/products", tags=["reviews"])


def _product_reviews(db: FileBackedDB, product_id: int) -> List[Dict[str, Any]]:
    return db.find_records("reviews", "product_id", product_id)


def _summary(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    count = len(rows)
    if not count:
        return {"count": 0, "average": "0.00", "distribution": {str(n): 0 for n in range(1, 6)}}
    ratings = [int(float(r.get("rating") or 0)) for r in rows]
    average = round_money(Decimal(sum(ratings)) / Decimal(count))
    return {
        "count": count,
        "average": str(average),
        "distribution": {str(n): ratings.count(n) for n in range(1, 6)},
    }


def _refresh_product_rating(db: FileBackedDB, product_id: int) -> None:
    """Keep products.rating / review_count in step with the reviews table."""
    summary = _summary(_product_reviews(db, product_id))
    db.update_record("products", "id", product_id, {"rating": summary["average"], "review_count": summary["count"]})


def _load_review(db: FileBackedDB, product_id: int, review_id: str) -> Dict[str, Any]:
    rec = db.get_record("reviews", "id", review_id)
    if not rec:
        raise HTTPException(status_code=404, detail="Review not found")
    if str(rec.get("product_id")) != str(product_id):
        raise HTTPException(status_code=400, detail="Review does not belong to product")
    return rec


def _bought(db: FileBackedDB, user_id: str, order_id: int, product_id: int) -> bool:
    row = db.get_record("orders", "id", order_id)
    if not row or str(row.get("user_id") or "") != str(user_id):
        return False
    order = Order.from_dict(row)
    return order.status in ("paid", "shipped", "delivered") and any(it.product_id == product_id for it in order.items)


@router.post("/{product_id}/reviews", status_code=201)
def create_review(product_id: int, payload: ReviewCreate, current_user: Dict[str, Any] = Depends(get_current_active_user),
                  db: FileBackedDB = Depends(get_db)):
    """
    Create a review for a product. One review per user and product.
    Body: { "rating": 1-5, "title": "...", "comment": "...", "order_id": optional }
    """
    if not db.get_record("products", "id", product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    user_id = str(current_user.get("id"))
    if any(str(r.get("user_id")) == user_id for r in _product_reviews(db, product_id)):
        raise HTTPException(status_code=400, detail="You already reviewed this product")

    review = {
        "product_id": product_id,
        "user_id": user_id,
        "username": current_user.get("username") or "",
        "rating": payload.rating,
        "title": payload.title,
        "comment": payload.comment,
        "is_verified": bool(payload.order_id) and _bought(db, user_id, payload.order_id, product_id),
        "created_at": datetime.utcnow().isoformat(sep=" "),
    }
    saved = db.create_record("reviews", review, id_field="id")
    _refresh_product_rating(db, product_id)
    return saved


@router.get("/{product_id}/reviews", response_model=List[Dict])
def list_reviews(product_id: int, db: FileBackedDB = Depends(get_db)):
    rows = _product_reviews(db, product_id)
    return sorted(rows, key=lambda r: str(r.get("created_at") or ""), reverse=True)


@router.get("/{product_id}/reviews/summary", response_model=Dict)
def reviews_summary(product_id: int, db: FileBackedDB = Depends(get_db)):
    return _summary(_product_reviews(db, product_id))


@router.delete("/{product_id}/reviews/{review_id}", status_code=204)
def delete_review(product_id: int, review_id: str, current_user: Dict[str, Any] = Depends(get_current_active_user),
                  db: FileBackedDB = Depends(get_db)):
    rec = _load_review(db, product_id, review_id)
    if str(rec.get("user_id")) != str(current_user.get("id")) and not current_user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Not allowed")
    if not db.delete_record("reviews", "id", review_id):
        raise HTTPException(status_code=500, detail="Failed to delete")
    _refresh_product_rating(db, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Review response (admin-only) endpoints ---
@router.post("/{product_id}/reviews/{review_id}/response", status_code=201)
def create_review_response(product_id: int, review_id: str, payload: ResponseCreate,
                           admin_user: Dict[str, Any] = Depends(require_admin), db: FileBackedDB = Depends(get_db)):
    """
    Attach the store's answer to a review. Only one response per review.
    """
    rec = _load_review(db, product_id, review_id)
    if rec.get("response_body"):
        raise HTTPException(status_code=400, detail="Response already exists for this review")
    return db.update_record("reviews", "id", review_id, {
        "response_body": payload.body,
        "response_author_id": admin_user.get("id"),
        "response_created_at": datetime.utcnow().isoformat(sep=" "),
    })


@router.put("/{product_id}/reviews/{review_id}/response", status_code=200)
def edit_review_response(product_id: int, review_id: str, payload: ResponseCreate,
                         admin_user: Dict[str, Any] = Depends(require_admin), db: FileBackedDB = Depends(get_db)):
    rec = _load_review(db, product_id, review_id)
    if not rec.get("response_body"):
        raise HTTPException(status_code=404, detail="Response not found")
    return db.update_record("reviews", "id", review_id, {
        "response_body": payload.body,
        "response_author_id": admin_user.get("id"),
        "response_updated_at": datetime.utcnow().isoformat(sep=" "),
    })


@router.delete("/{product_id}/reviews/{review_id}/response", status_code=204)
def delete_review_response(product_id: int, review_id: str, admin_user: Dict[str, Any] = Depends(require_admin),
                           db: FileBackedDB = Depends(get_db)):
    rec = _load_review(db, product_id, review_id)
    if not rec.get("response_body"):
        raise HTTPException(status_code=404, detail="Response not found")
    db.update_record("reviews", "id", review_id, {
        "response_body": "",
        "response_author_id": "",
        "response_created_at": "",
        "response_updated_at": "",
    })
    return Response(status_code=status.HTTP_204_NO_CONTENT)
