# storefront/models/order.py
from __future__ import annotations
from dataclasses import dataclass, asdict, field
from decimal import Decimal
from typing import Optional, Dict, Any, List
from datetime import datetime
import json

from storefront.core.pricing import InvalidAmount, to_decimal
from storefront.core.state_machine import StateMachine


def _money(raw: Any) -> Decimal:
    if raw in (None, ""):
        return Decimal("0")
    try:
        return to_decimal(raw)
    except InvalidAmount:
        return Decimal("0")


@dataclass
class OrderItem:
    product_id: int
    name: Optional[str] = None
    unit_price: Decimal = Decimal("0")
    quantity: int = 1

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=int(float(d.get("product_id") or d.get("id") or 0)),
            name=d.get("name") or d.get("title") or None,
            unit_price=_money(d.get("unit_price") or d.get("price")),
            quantity=int(float(d.get("quantity") or 1)),
        )

    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": int(self.product_id),
            "name": self.name or "",
            "unit_price": str(self.unit_price),
            "quantity": int(self.quantity),
            "total_price": str(self.total_price()),
        }


@dataclass
class Order:
    """
    Order domain model. The `items` field is a list of OrderItem objects.
    Money fields hold the values computed at checkout; `total_amount` is the
    rounded payable total.
    """
    id: Optional[int] = None
    user_id: Optional[str] = None
    items: List[OrderItem] = field(default_factory=list)
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    customer_document: str = ""
    shipping_address: str = ""
    shipping_city: str = ""
    shipping_state: str = ""
    shipping_zip: str = ""
    shipping_method: str = ""
    shipping_cost: Decimal = Decimal("0")
    payment_method: str = ""
    subtotal: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    status: str = "pending"  # pending, paid, shipped, delivered, cancelled, refunded, returned
    payment_id: Optional[str] = None
    payment_status: str = "pending"
    created_at: Optional[datetime] = None
    status_history: List[Dict[str, Any]] = field(default_factory=list)
    # optimistic concurrency control
    version: int = 0

    ALLOWED_TRANSITIONS = {
        "pending": ["paid", "cancelled"],
        "paid": ["shipped", "cancelled", "refunded"],
        "shipped": ["delivered", "returned"],
        "delivered": [],
        "cancelled": [],
        "refunded": [],
        "returned": [],
    }

    def _make_state_machine(self) -> StateMachine:
        return StateMachine(state=self.status, allowed_transitions=self.ALLOWED_TRANSITIONS,
                            version=self.version, history=list(self.status_history))

    def transition_to(self, new_status: str, actor: Optional[str] = None, meta: Optional[Dict[str, Any]] = None,
                      expected_version: Optional[int] = None) -> None:
        """
        Transition to a new status using the StateMachine. Raises InvalidTransition or OptimisticLockError.
        On success updates self.status, self.status_history and increments self.version.
        """
        sm = self._make_state_machine()
        result = sm.apply(new_status, actor=actor, meta=meta, expected_version=expected_version)
        self.status = result["state"]
        self.status_history = result["history"]
        self.version = int(result["version"])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Order":
        if d is None:
            raise ValueError("Cannot construct Order from None")
        raw_items = d.get("items") or []
        if isinstance(raw_items, str):
            try:
                raw_items = json.loads(raw_items)
            except ValueError:
                raw_items = []
            if not isinstance(raw_items, list):
                raw_items = []
        items_list = []
        for it in raw_items:
            if isinstance(it, OrderItem):
                items_list.append(it)
            elif isinstance(it, dict):
                items_list.append(OrderItem.from_dict(it))

        created_at_raw = d.get("created_at")
        created_at = None
        if isinstance(created_at_raw, datetime):
            created_at = created_at_raw
        elif created_at_raw:
            try:
                created_at = datetime.fromisoformat(str(created_at_raw))
            except ValueError:
                created_at = None

        status_history_raw = d.get("status_history") or "[]"
        if isinstance(status_history_raw, str):
            try:
                status_history = json.loads(status_history_raw) or []
            except ValueError:
                status_history = []
        else:
            status_history = status_history_raw or []

        raw_id = d.get("id") or d.get("order_id")
        return cls(
            id=int(float(raw_id)) if raw_id not in (None, "") else None,
            user_id=d.get("user_id") or None,
            items=items_list,
            customer_name=str(d.get("customer_name") or ""),
            customer_email=str(d.get("customer_email") or ""),
            customer_phone=str(d.get("customer_phone") or ""),
            customer_document=str(d.get("customer_document") or ""),
            shipping_address=str(d.get("shipping_address") or ""),
            shipping_city=str(d.get("shipping_city") or ""),
            shipping_state=str(d.get("shipping_state") or ""),
            shipping_zip=str(d.get("shipping_zip") or ""),
            shipping_method=str(d.get("shipping_method") or ""),
            shipping_cost=_money(d.get("shipping_cost")),
            payment_method=str(d.get("payment_method") or ""),
            subtotal=_money(d.get("subtotal")),
            discount=_money(d.get("discount")),
            total_amount=_money(d.get("total_amount") or d.get("total")),
            status=d.get("status") or "pending",
            payment_id=d.get("payment_id") or None,
            payment_status=d.get("payment_status") or "pending",
            created_at=created_at,
            status_history=status_history,
            version=int(float(d.get("version") or 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the order into dict suitable for CSV writing. `items` and history are serialized as JSON strings.
        """
        out = asdict(self)
        out["items"] = json.dumps([it.to_dict() for it in self.items], ensure_ascii=False)
        out["status_history"] = json.dumps(self.status_history or [], ensure_ascii=False)
        for k in ("shipping_cost", "subtotal", "discount", "total_amount"):
            out[k] = str(getattr(self, k))
        out["version"] = int(self.version or 0)
        out["payment_id"] = self.payment_id or ""
        if self.created_at and isinstance(self.created_at, datetime):
            out["created_at"] = self.created_at.isoformat(sep=" ")
        else:
            out["created_at"] = ""
        if out.get("id") is None:
            out.pop("id")
        return out
