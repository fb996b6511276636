from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CartItemSchema(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class CartCreateSchema(BaseModel):
    items: List[CartItemSchema] = []


class QuantityUpdate(BaseModel):
    quantity: int


class CartLineOut(BaseModel):
    product_id: int
    name: str
    unit_price: Decimal
    quantity: int
    image_url: str = ""
    description: str = ""
    short_description: str = ""
    line_total: Decimal
    line_total_display: str


class CartOut(BaseModel):
    id: str
    user_id: Optional[str] = None
    items: List[CartLineOut] = []
    item_count: int = 0
    total: Decimal
    total_display: str
    updated_at: Optional[str] = None
