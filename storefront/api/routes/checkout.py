from typing import Any, Dict, List
from fastapi import APIRouter, Depends, HTTPException, status

from storefront.api.deps import get_db
from storefront.api.routes.cart import catalog_line, item_from_catalog, load_cart
from storefront.api.schemas.order import CheckoutQuoteRequest
from storefront.core.pricing import format_currency
from storefront.database import FileBackedDB
from storefront.models.cart import Cart
from storefront.services.checkout import CheckoutError, SHIPPING_METHODS, compute_checkout, discount_rates

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


def resolve_cart(db: FileBackedDB, payload: CheckoutQuoteRequest) -> Cart:
    """
    The cart being checked out: the stored session cart, or one built from inline items.
    Either way every line is priced from the current catalog.
    """
    if payload.cart_id:
        cart = load_cart(db, payload.cart_id)
        lines = [catalog_line(db, it.product_id, it.quantity) for it in cart.snapshot()]
        cart.clear()
        for line in lines:
            cart.add_item(line)
        return cart
    cart = Cart()
    for it in payload.items or []:
        cart.add_item(item_from_catalog(db, it))
    return cart


@router.get("/options")
def checkout_options() -> Dict[str, List[Dict[str, Any]]]:
    """Shipping methods and payment methods offered at checkout."""
    rates = discount_rates()
    return {
        "shipping_methods": [
            {"id": m.id, "name": m.name, "price": str(m.price), "price_display": format_currency(m.price), "days": m.days}
            for m in SHIPPING_METHODS.values()
        ],
        "payment_methods": [
            {"id": method, "discount_percent": str(rate)} for method, rate in rates.items()
        ],
    }


@router.post("/quote")
def checkout_quote(payload: CheckoutQuoteRequest, db: FileBackedDB = Depends(get_db)):
    """
    Price a cart for the selected shipping and payment methods without creating anything.
    """
    cart = resolve_cart(db, payload)
    try:
        draft = compute_checkout(cart, payload.shipping_method, payload.payment_method)
    except CheckoutError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"ok": True, "checkout": draft.to_dict()}
