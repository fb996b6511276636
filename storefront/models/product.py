# storefront/models/product.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Optional, Dict, Any
from datetime import datetime
import re
import unicodedata

from storefront.core.pricing import InvalidAmount, to_decimal


def slugify(text: str) -> str:
    """'Monitor UltraWide 29"' -> 'monitor-ultrawide-29'"""
    normalized = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "y", "t")
    return False


def _to_int(raw: Any, default: Optional[int] = 0) -> Optional[int]:
    if raw in (None, ""):
        return default
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return default


def _to_price(raw: Any, default: Optional[Decimal] = Decimal("0")) -> Optional[Decimal]:
    if raw in (None, ""):
        return default
    try:
        return to_decimal(raw)
    except InvalidAmount:
        return default


@dataclass
class Category:
    id: Optional[int] = None
    name: str = ""
    slug: str = ""
    icon: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Category":
        if d is None:
            raise ValueError("Cannot construct Category from None")
        name = str(d.get("name") or "")
        return cls(
            id=_to_int(d.get("id"), None),
            name=name,
            slug=str(d.get("slug") or slugify(name)),
            icon=str(d.get("icon") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Product:
    """
    Product model. CSV-backed store keeps everything as strings,
    so these helpers convert to proper types. Prices are Decimal.
    """
    id: Optional[int] = None
    name: str = ""
    slug: str = ""
    description: str = ""
    price: Decimal = Decimal("0")
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
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Product":
        if d is None:
            raise ValueError("Cannot construct Product from None")
        name = str(d.get("name") or d.get("title") or "")

        created_at_raw = d.get("created_at") or d.get("created")
        created_at = None
        if created_at_raw:
            if isinstance(created_at_raw, datetime):
                created_at = created_at_raw
            else:
                try:
                    created_at = datetime.fromisoformat(str(created_at_raw))
                except ValueError:
                    created_at = None

        return cls(
            id=_to_int(d.get("id") or d.get("product_id"), None),
            name=name,
            slug=str(d.get("slug") or slugify(name)),
            description=str(d.get("description") or ""),
            price=_to_price(d.get("price")),
            old_price=_to_price(d.get("old_price"), None),
            discount_percentage=_to_int(d.get("discount_percentage"), None),
            image_url=str(d.get("image_url") or d.get("image") or ""),
            category_id=_to_int(d.get("category_id"), None),
            stock=_to_int(d.get("stock"), 0),
            featured=_to_bool(d.get("featured", False)),
            specs=str(d.get("specs") or ""),
            sku=str(d.get("sku") or ""),
            rating=_to_price(d.get("rating")),
            review_count=_to_int(d.get("review_count"), 0),
            weight_kg=_to_price(d.get("weight_kg"), None),
            created_by=d.get("created_by") or None,
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        if self.created_at and isinstance(self.created_at, datetime):
            out["created_at"] = self.created_at.isoformat(sep=" ")
        else:
            out["created_at"] = ""
        # decimals are stored as strings so the CSV never sees a float
        out["price"] = str(self.price)
        out["old_price"] = "" if self.old_price is None else str(self.old_price)
        out["rating"] = str(self.rating)
        out["weight_kg"] = "" if self.weight_kg is None else str(self.weight_kg)
        out["featured"] = bool(self.featured)
        return out
