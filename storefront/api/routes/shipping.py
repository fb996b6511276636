from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_db
from storefront.api.schemas.shipping import ShippingQuoteRequest
from storefront.database import FileBackedDB
from storefront.models.product import Product
from storefront.services.shipping import quote_shipping

router = APIRouter(prefix="/api/shipping", tags=["shipping"])


@router.post("/calculate")
def calculate_shipping(payload: ShippingQuoteRequest, db: FileBackedDB = Depends(get_db)):
    """
    Quote economic / standard / express delivery for the destination state,
    weighing the items with the catalog's weight_kg.
    """
    weights = {}
    for it in payload.items:
        row = db.get_record("products", "id", it.product_id)
        if row:
            product = Product.from_dict(row)
            if product.weight_kg is not None:
                weights[it.product_id] = product.weight_kg
    try:
        return quote_shipping([it.model_dump() for it in payload.items], payload.state, payload.total, weights)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
