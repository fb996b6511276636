from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ShippingItem(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class ShippingQuoteRequest(BaseModel):
    items: List[ShippingItem] = Field(..., min_length=1)
    state: str = Field(..., min_length=2, max_length=2, description="UF, e.g. SP")
    zip_code: Optional[str] = None
    total: Decimal = Field(Decimal("0"), ge=0, description="Cart total, used for the free-shipping threshold")
