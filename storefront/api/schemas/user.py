# storefront/api/schemas/user.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None


class UserOut(BaseModel):
    id: Optional[str] = None
    username: str
    email: EmailStr
    full_name: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None
    role: str = "customer"
    is_admin: bool = False
    is_active: bool = True


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)


class AdminUserUpdate(BaseModel):
    role: Optional[str] = Field(None, pattern="^(customer|admin)$")
    is_active: Optional[bool] = None
    full_name: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
