from typing import Any, List, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Response, status
from datetime import datetime
from storefront.api.deps import get_db, get_current_active_user
from storefront.api.routes.cart import cart_to_out, item_from_catalog, load_cart, save_cart
from storefront.api.schemas.cart import CartItemSchema, CartOut
from storefront.api.schemas.wishlist import MoveToCart, WishlistCreate, WishlistItemOut
from storefront.database import FileBackedDB
from storefront.models.cart import Cart

router = APIRouter(prefix="/api", tags=["wishlist"])


def _owned_item(db: FileBackedDB, item_id: str, user_id: str) -> Dict[str, Any]:
    rec = db.get_record("wishlists", "id", item_id)
    if not rec:
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    if str(rec.get("user_id")) != str(user_id):
        raise HTTPException(status_code=403, detail="Not allowed")
    return rec


@router.get("/wishlist", response_model=List[WishlistItemOut])
def list_wishlist(current_user: Dict[str, Any] = Depends(get_current_active_user), db: FileBackedDB = Depends(get_db)):
    return db.find_records("wishlists", "user_id", current_user.get("id"))


@router.post("/wishlist", status_code=201, response_model=WishlistItemOut)
def add_to_wishlist(payload: WishlistCreate, current_user: Dict[str, Any] = Depends(get_current_active_user),
                    db: FileBackedDB = Depends(get_db)):
    """
    Save a product to the wishlist. Saving the same product twice returns the existing entry.
    """
    user_id = str(current_user.get("id"))
    if db.get_record("products", "id", payload.product_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")
    for rec in db.find_records("wishlists", "user_id", user_id):
        if str(rec.get("product_id")) == str(payload.product_id):
            return rec
    record = {"user_id": user_id, "product_id": payload.product_id, "added_at": datetime.utcnow().isoformat(sep=" ")}
    return db.create_record("wishlists", record, id_field="id")


@router.delete("/wishlist/{item_id}", status_code=204)
def remove_wishlist_item(item_id: str, current_user: Dict[str, Any] = Depends(get_current_active_user),
                         db: FileBackedDB = Depends(get_db)):
    _owned_item(db, item_id, current_user.get("id"))
    if not db.delete_record("wishlists", "id", item_id):
        raise HTTPException(status_code=500, detail="Failed to delete")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/wishlist/{item_id}/move-to-cart", status_code=201, response_model=CartOut)
def move_wishlist_item_to_cart(item_id: str, payload: Optional[MoveToCart] = Body(None),
                               current_user: Dict[str, Any] = Depends(get_current_active_user),
                               db: FileBackedDB = Depends(get_db)):
    """
    Move a wishlist item into a session cart.
    - Validates ownership of the wishlist item and that the product exists
    - Adds one unit to the cart given by cart_id (merging with an existing line),
      or to a new cart for the user when no cart_id is passed
    - Deletes the wishlist entry
    Returns the cart.
    """
    wish = _owned_item(db, item_id, current_user.get("id"))
    line = item_from_catalog(db, CartItemSchema(product_id=int(float(wish.get("product_id"))), quantity=1))

    cart_id = payload.cart_id if payload else None
    cart = load_cart(db, cart_id) if cart_id else Cart(user_id=str(current_user.get("id")))
    cart.add_item(line)
    save_cart(db, cart)

    if not db.delete_record("wishlists", "id", item_id):
        raise HTTPException(status_code=500, detail="Failed to remove wishlist item after adding to cart")
    return cart_to_out(cart)
