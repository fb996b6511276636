from datetime import datetime
from typing import Any, Dict, Optional
from fastapi import APIRouter, HTTPException, status, Depends
from storefront.api.deps import get_db, get_optional_user
from storefront.models.cart import Cart, CartItem
from storefront.models.product import Product
from storefront.core.pricing import format_currency
from storefront.database import FileBackedDB
from storefront.api.schemas.cart import CartCreateSchema, CartItemSchema, CartOut, QuantityUpdate

router = APIRouter(prefix="/api/cart", tags=["cart"])


def item_from_catalog(db: FileBackedDB, item: CartItemSchema) -> CartItem:
    """Cart line for `item` with name, price and image taken from the catalog. 404 for unknown products."""
    return catalog_line(db, item.product_id, item.quantity)


def catalog_line(db: FileBackedDB, product_id: int, quantity: int) -> CartItem:
    row = db.get_record("products", "id", product_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product {product_id} not found")
    product = Product.from_dict(row)
    return CartItem(
        product_id=product.id,
        name=product.name,
        unit_price=product.price,
        quantity=quantity,
        image_url=product.image_url,
        description=product.description,
    )


def load_cart(db: FileBackedDB, cart_id: str) -> Cart:
    row = db.get_record("carts", "id", cart_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart not found")
    return Cart.from_dict(row)


def save_cart(db: FileBackedDB, cart: Cart) -> Cart:
    cart.updated_at = datetime.utcnow().isoformat(sep=" ")
    data = cart.to_dict()
    if cart.id:
        db.update_record("carts", "id", cart.id, data)
    else:
        data.pop("id")
        saved = db.create_record("carts", data, id_field="id")
        cart.id = saved["id"]
    return cart


def cart_to_out(cart: Cart) -> Dict[str, Any]:
    total = cart.get_total()
    lines = []
    for it in cart.items:
        lines.append({
            "product_id": it.product_id,
            "name": it.name,
            "unit_price": it.unit_price,
            "quantity": it.quantity,
            "image_url": it.image_url or "",
            "description": it.description or "",
            "short_description": it.short_description(),
            "line_total": it.line_total(),
            "line_total_display": format_currency(it.line_total()),
        })
    return {
        "id": cart.id,
        "user_id": cart.user_id,
        "items": lines,
        "item_count": cart.count_items(),
        "total": total,
        "total_display": format_currency(total),
        "updated_at": cart.updated_at,
    }


@router.post("", response_model=CartOut, status_code=201)
def create_cart(payload: CartCreateSchema, current_user: Optional[Dict[str, Any]] = Depends(get_optional_user),
                db: FileBackedDB = Depends(get_db)):
    """
    Create a session cart. Items in the payload are merged by product id.
    Returns the stored cart (including generated 'id').
    """
    cart = Cart(user_id=(current_user or {}).get("id"))
    for it in payload.items:
        cart.add_item(item_from_catalog(db, it))
    return cart_to_out(save_cart(db, cart))


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(cart_id: str, db: FileBackedDB = Depends(get_db)):
    """
    Retrieve a cart by id with its recomputed total. Returns 404 if not found.
    """
    return cart_to_out(load_cart(db, cart_id))


@router.post("/{cart_id}/items", response_model=CartOut)
def add_item_to_cart(cart_id: str, item: CartItemSchema, db: FileBackedDB = Depends(get_db)):
    """
    Add a product to the cart. A product already in the cart has its quantity
    increased instead of getting a second line.
    """
    cart = load_cart(db, cart_id)
    cart.add_item(item_from_catalog(db, item))
    return cart_to_out(save_cart(db, cart))


@router.put("/{cart_id}/items/{product_id}", response_model=CartOut)
def update_cart_item(cart_id: str, product_id: int, payload: QuantityUpdate, db: FileBackedDB = Depends(get_db)):
    """
    Set a line's quantity (values below 1 become 1). Unknown product ids leave the cart unchanged.
    """
    cart = load_cart(db, cart_id)
    if cart.update_quantity(product_id, payload.quantity):
        save_cart(db, cart)
    return cart_to_out(cart)


@router.delete("/{cart_id}/items/{product_id}", response_model=CartOut)
def remove_cart_item(cart_id: str, product_id: int, db: FileBackedDB = Depends(get_db)):
    cart = load_cart(db, cart_id)
    if cart.remove_item(product_id):
        save_cart(db, cart)
    return cart_to_out(cart)


@router.delete("/{cart_id}/items", response_model=CartOut)
def clear_cart(cart_id: str, db: FileBackedDB = Depends(get_db)):
    cart = load_cart(db, cart_id)
    cart.clear()
    return cart_to_out(save_cart(db, cart))
