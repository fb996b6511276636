# --- Pydantic schemas for wishlist endpoints ---
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class WishlistCreate(BaseModel):
    product_id: int = Field(..., description="ID of the product to add to the wishlist")


class MoveToCart(BaseModel):
    cart_id: Optional[str] = Field(None, description="Session cart to move into; a new cart is created if omitted")


class WishlistItemOut(BaseModel):
    id: str
    user_id: str
    product_id: int
    added_at: Optional[str] = None

    model_config = ConfigDict(extra="allow")
