from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class PaymentBuyer(BaseModel):
    name: str
    email: EmailStr
    document: str


class PreferenceItem(BaseModel):
    id: int
    name: str
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class BackUrls(BaseModel):
    success: str
    failure: str
    pending: str


class PreferenceRequest(BaseModel):
    items: List[PreferenceItem] = Field(..., min_length=1)
    buyer: PaymentBuyer
    back_urls: Optional[BackUrls] = None
    order_id: int


class PixRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    buyer: PaymentBuyer
    description: str = Field(..., min_length=1)
    order_id: int
