from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SiteSettings(BaseModel):
    site_name: str = "TechStore"
    site_url: str = "http://localhost:3000"
    site_description: str = "Loja de Informática e Tecnologia"
    contact_email: EmailStr = "contato@techstore.com.br"
    contact_phone: str = "(00) 0000-0000"
    contact_address: str = ""
    social_facebook: str = ""
    social_instagram: str = ""
    social_whatsapp: str = ""
    meta_description: str = ""
    enable_maintenance: bool = False
    cache_ttl: int = Field(3600, ge=0)

    model_config = ConfigDict(extra="ignore")


class SiteSettingsUpdate(BaseModel):
    site_name: Optional[str] = Field(None, min_length=1)
    site_url: Optional[str] = None
    site_description: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    contact_address: Optional[str] = None
    social_facebook: Optional[str] = None
    social_instagram: Optional[str] = None
    social_whatsapp: Optional[str] = None
    meta_description: Optional[str] = None
    enable_maintenance: Optional[bool] = None
    cache_ttl: Optional[int] = Field(None, ge=0)
