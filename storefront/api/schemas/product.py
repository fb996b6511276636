# storefront/api/schemas/product.py
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    icon: str = ""


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    icon: Optional[str] = None


class CategoryOut(BaseModel):
    id: int
    name: str
    slug: str
    icon: str = ""


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: str = ""
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    old_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    discount_percentage: Optional[int] = Field(None, ge=0, le=100)
    image_url: str = ""
    category_id: Optional[int] = None
    stock: int = Field(0, ge=0)
    featured: bool = False
    specs: str = ""
    sku: str = ""
    weight_kg: Optional[Decimal] = Field(None, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    old_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    discount_percentage: Optional[int] = Field(None, ge=0, le=100)
    image_url: Optional[str] = None
    category_id: Optional[int] = None
    stock: Optional[int] = Field(None, ge=0)
    featured: Optional[bool] = None
    specs: Optional[str] = None
    sku: Optional[str] = None
    weight_kg: Optional[Decimal] = Field(None, ge=0)


class InstallmentOut(BaseModel):
    count: int
    amount: Decimal
    display: str


class ProductOut(BaseModel):
    id: int
    name: str
    slug: str
    description: str = ""
    price: Decimal
    old_price: Optional[Decimal] = None
    discount_percentage: Optional[int] = None
    image_url: str = ""
    category_id: Optional[int] = None
    stock: int = 0
    featured: bool = False
    specs: str = ""
    sku: str = ""
    rating: Decimal = Decimal("0")
    review_count: int = 0
    weight_kg: Optional[Decimal] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    # display helpers for product cards / detail page
    price_display: str
    old_price_display: Optional[str] = None
    pix_price_display: str
    installment: InstallmentOut
    images: List[str] = []
