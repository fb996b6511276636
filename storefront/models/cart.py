# storefront/models/cart.py
from __future__ import annotations
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import List, Dict, Any, Optional
import json

from storefront.core.pricing import InvalidAmount, to_decimal


@dataclass
class CartItem:
    product_id: int
    name: str = ""
    unit_price: Decimal = Decimal("0")
    quantity: int = 1
    image_url: str = ""
    description: Optional[str] = None

    def __post_init__(self):
        self.product_id = int(self.product_id)
        self.unit_price = to_decimal(self.unit_price)
        self.quantity = max(1, int(self.quantity))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CartItem":
        if d is None:
            raise ValueError("Cannot construct CartItem from None")
        raw_id = d.get("product_id", d.get("id"))
        try:
            product_id = int(float(raw_id))
        except (TypeError, ValueError):
            raise ValueError(f"Invalid product id: {raw_id!r}")
        price_raw = d.get("unit_price", d.get("price"))
        unit_price = to_decimal(price_raw if price_raw not in (None, "") else "0")
        try:
            quantity = int(float(d.get("quantity") or d.get("qty") or 1))
        except (TypeError, ValueError):
            quantity = 1
        return cls(
            product_id=product_id,
            name=str(d.get("name") or d.get("title") or ""),
            unit_price=unit_price,
            quantity=quantity,
            image_url=str(d.get("image_url") or d.get("imageUrl") or ""),
            description=d.get("description") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        # unit_price travels as a decimal string, never a float
        return {
            "product_id": int(self.product_id),
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": int(self.quantity),
            "image_url": self.image_url or "",
            "description": self.description or "",
        }

    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def short_description(self, limit: int = 60) -> str:
        text = (self.description or "").strip()
        if len(text) <= limit:
            return text
        return text[: max(0, limit - 3)].rstrip() + "..."


@dataclass
class Cart:
    """
    The cart store: one line per product id, mutated only through the command
    methods below. Persisted as a single row keyed by the session cart id with
    'items' serialized as a flat JSON list of CartItem dicts.
    """
    id: Optional[str] = None
    user_id: Optional[str] = None
    items: List[CartItem] = field(default_factory=list)
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Cart":
        if d is None:
            raise ValueError("Cannot construct Cart from None")
        raw_items = d.get("items") or []
        if isinstance(raw_items, str):
            try:
                raw_items = json.loads(raw_items)
            except ValueError:
                raw_items = []
            if not isinstance(raw_items, list):
                raw_items = []
        cart = cls(
            id=d.get("id") or d.get("cart_id") or None,
            user_id=d.get("user_id") or None,
            updated_at=d.get("updated_at") or None,
        )
        # route through add_item so a malformed row can't break the one-line-per-product rule
        for it in raw_items:
            if isinstance(it, CartItem):
                cart.add_item(it)
            elif isinstance(it, dict):
                try:
                    cart.add_item(CartItem.from_dict(it))
                except (ValueError, InvalidAmount):
                    continue
        return cart

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id or "",
            "user_id": self.user_id or "",
            "items": json.dumps([it.to_dict() for it in self.items], ensure_ascii=False),
            "updated_at": self.updated_at or "",
        }

    def _find(self, product_id: int) -> Optional[CartItem]:
        pid = int(product_id)
        for it in self.items:
            if it.product_id == pid:
                return it
        return None

    # --- commands ---

    def add_item(self, item: CartItem) -> CartItem:
        """
        Add `item`. If the product is already in the cart its quantity grows by
        item.quantity; otherwise a copy of the item is appended.
        """
        existing = self._find(item.product_id)
        if existing is not None:
            existing.quantity = int(existing.quantity) + int(item.quantity)
            return existing
        added = replace(item)
        self.items.append(added)
        return added

    def update_quantity(self, product_id: int, new_quantity: int) -> bool:
        """
        Set the quantity, never below 1. Unknown product ids are ignored;
        returns False in that case.
        """
        existing = self._find(product_id)
        if existing is None:
            return False
        existing.quantity = max(1, int(new_quantity))
        return True

    def remove_item(self, product_id: int) -> bool:
        existing = self._find(product_id)
        if existing is None:
            return False
        self.items.remove(existing)
        return True

    def clear(self) -> None:
        self.items = []

    # --- queries ---

    def get_total(self) -> Decimal:
        # always recomputed from the lines
        return sum((it.line_total() for it in self.items), Decimal("0"))

    def count_items(self) -> int:
        return int(sum(it.quantity for it in self.items))

    def is_empty(self) -> bool:
        return not self.items

    def snapshot(self) -> List[CartItem]:
        return [replace(it) for it in self.items]
