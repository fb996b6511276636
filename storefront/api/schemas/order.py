from typing import List, Optional, Any, Dict
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
import json

from storefront.api.schemas.cart import CartItemSchema


class BuyerInfo(BaseModel):
    name: str = Field(..., min_length=3, description="Full name")
    email: EmailStr
    phone: str = Field(..., min_length=10)
    document: str = Field(..., min_length=11, description="CPF")
    address: str = Field(..., min_length=5)
    number: str = Field(..., min_length=1)
    complement: Optional[str] = None
    neighborhood: str = Field(..., min_length=2)
    city: str = Field(..., min_length=2)
    state: str = Field(..., min_length=2, max_length=2)
    zip_code: str = Field(..., min_length=8)

    @field_validator("document", "zip_code", "phone", mode="before")
    @classmethod
    def _digits_only(cls, v):
        if isinstance(v, str):
            return "".join(ch for ch in v if ch.isdigit())
        return v

    @field_validator("state", mode="before")
    @classmethod
    def _upper_state(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    def full_address(self) -> str:
        parts = [f"{self.address}, {self.number}"]
        if self.complement:
            parts.append(self.complement)
        parts.append(self.neighborhood)
        return ", ".join(parts)

    def to_buyer(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "document": self.document,
            "address": self.full_address(),
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
        }


class CheckoutQuoteRequest(BaseModel):
    cart_id: Optional[str] = Field(None, description="Session cart to price")
    items: Optional[List[CartItemSchema]] = Field(None, description="Inline items if not using cart_id")
    # left optional so a missing selection surfaces as a checkout error, not a schema error
    shipping_method: Optional[str] = None
    payment_method: Optional[str] = None


class CheckoutRequest(CheckoutQuoteRequest):
    buyer: BuyerInfo


class TransitionRequest(BaseModel):
    status: str
    meta: Optional[Dict[str, Any]] = None
    expected_version: Optional[int] = None


class StatusUpdate(BaseModel):
    status: str


class OrderOut(BaseModel):
    id: Optional[int] = None
    user_id: Optional[str] = None
    # accept either a list or a stringified JSON (DB stores items as JSON string)
    items: Optional[Any] = None
    total_amount: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    created_at: Optional[str] = None
    version: Optional[int] = None
    status_history: Optional[Any] = None

    @field_validator("items", "status_history", mode="before")
    @classmethod
    def _parse_json(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except ValueError:
                return v
        return v

    @field_validator("id", "version", mode="before")
    @classmethod
    def _parse_int(cls, v):
        if v in (None, ""):
            return None
        return int(float(v))

    @field_validator("total_amount", mode="before")
    @classmethod
    def _as_str(cls, v):
        return None if v is None else str(v)

    # allow extra fields from DB rows
    model_config = ConfigDict(extra="allow")


class OrderResponse(BaseModel):
    ok: bool
    order: OrderOut
    payment: Optional[Dict[str, Any]] = None
    checkout: Optional[Dict[str, Any]] = None
