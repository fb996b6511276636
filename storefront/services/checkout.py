# storefront/services/checkout.py
"""
Checkout total computation.

    subtotal      = cart.get_total()
    shipping_cost = fixed price of the selected shipping method
    discount      = subtotal × discount_rate(payment_method) / 100
    total         = subtotal + shipping_cost − discount

`compute_checkout` is a pure function of (cart snapshot, shipping, payment).
The derived values are kept unrounded on the draft; `payable_total` is the
total rounded with `round_money`, which is what gets persisted and charged.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from storefront.config import settings
from storefront.core.pricing import (
    format_currency,
    installment_options,
    percentage_of,
    round_money,
    to_decimal,
)
from storefront.models.cart import Cart, CartItem

logger = logging.getLogger(__name__)


class CheckoutError(ValueError):
    pass


class EmptyCartError(CheckoutError):
    pass


class MissingSelectionError(CheckoutError):
    pass


@dataclass(frozen=True)
class ShippingMethod:
    id: str
    name: str
    price: Decimal
    days: str


SHIPPING_METHODS: Dict[str, ShippingMethod] = {
    "economic": ShippingMethod("economic", "Entrega Econômica", Decimal("20.00"), "até 12 dias úteis"),
    "standard": ShippingMethod("standard", "Entrega Padrão", Decimal("30.00"), "até 7 dias úteis"),
    "express": ShippingMethod("express", "Entrega Expressa", Decimal("50.00"), "até 3 dias úteis"),
}
SHIPPING_ALIASES = {"normal": "standard"}

CREDIT_CARD = "credit_card"
PIX = "pix"
BOLETO = "boleto"
PAYMENT_METHODS = (CREDIT_CARD, PIX, BOLETO)


def get_shipping_method(method_id: Optional[str]) -> ShippingMethod:
    key = (method_id or "").strip().lower()
    key = SHIPPING_ALIASES.get(key, key)
    if not key:
        raise MissingSelectionError("Select a shipping method")
    if key not in SHIPPING_METHODS:
        raise MissingSelectionError(f"Unknown shipping method: {method_id}")
    return SHIPPING_METHODS[key]


def normalize_payment_method(method: Optional[str]) -> str:
    key = (method or "").strip().lower()
    if not key:
        raise MissingSelectionError("Select a payment method")
    if key not in PAYMENT_METHODS:
        raise MissingSelectionError(f"Unknown payment method: {method}")
    return key


def discount_rates() -> Dict[str, Decimal]:
    return {
        PIX: to_decimal(settings.PIX_DISCOUNT_PERCENT),
        BOLETO: to_decimal(settings.BOLETO_DISCOUNT_PERCENT),
        CREDIT_CARD: to_decimal(settings.CREDIT_CARD_DISCOUNT_PERCENT),
    }


def discount_rate(payment_method: str, rates: Optional[Dict[str, Decimal]] = None) -> Decimal:
    """Discount percentage for a payment method (5 for PIX by default, 0 otherwise)."""
    table = rates if rates is not None else discount_rates()
    return table.get(normalize_payment_method(payment_method), Decimal("0"))


@dataclass
class CheckoutOrderDraft:
    items: List[CartItem]
    shipping_method: ShippingMethod
    payment_method: str
    subtotal: Decimal
    shipping_cost: Decimal
    discount: Decimal
    total: Decimal
    discount_percent: Decimal = Decimal("0")
    buyer: Dict[str, Any] = field(default_factory=dict)

    @property
    def payable_total(self) -> Decimal:
        return round_money(self.total)

    def gateway_items(self) -> List[Dict[str, Any]]:
        """
        Preference lines: the cart items plus one line for shipping. A discounted
        draft is sent as a single line priced at payable_total, since preference
        items cannot carry negative prices; the lines always sum to payable_total.
        """
        if self.discount > 0:
            return [{
                "product_id": "order",
                "name": f"Pedido {settings.STORE_NAME} ({sum(it.quantity for it in self.items)} itens, "
                        f"{self.shipping_method.name}, desconto de {self.discount_percent}%)",
                "unit_price": str(self.payable_total),
                "quantity": 1,
            }]
        lines = [it.to_dict() for it in self.items]
        if self.shipping_cost > 0:
            lines.append({
                "product_id": f"shipping-{self.shipping_method.id}",
                "name": self.shipping_method.name,
                "unit_price": str(self.shipping_cost),
                "quantity": 1,
            })
        return lines

    def to_order_payload(self) -> Dict[str, Any]:
        """Fields of the order record produced by this draft (money as rounded decimal strings)."""
        buyer = self.buyer or {}
        return {
            "customer_name": buyer.get("name") or "",
            "customer_email": buyer.get("email") or "",
            "customer_phone": buyer.get("phone") or "",
            "customer_document": buyer.get("document") or "",
            "shipping_address": buyer.get("address") or "",
            "shipping_city": buyer.get("city") or "",
            "shipping_state": buyer.get("state") or "",
            "shipping_zip": buyer.get("zip_code") or "",
            "shipping_method": self.shipping_method.id,
            "shipping_cost": str(round_money(self.shipping_cost)),
            "payment_method": self.payment_method,
            "subtotal": str(round_money(self.subtotal)),
            "discount": str(round_money(self.discount)),
            "total_amount": str(self.payable_total),
            "items": [
                {
                    "product_id": it.product_id,
                    "name": it.name,
                    "quantity": it.quantity,
                    "unit_price": str(it.unit_price),
                    "total_price": str(it.line_total()),
                }
                for it in self.items
            ],
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [dict(it.to_dict(), line_total=str(it.line_total()),
                           line_total_display=format_currency(it.line_total()))
                      for it in self.items],
            "shipping_method": {
                "id": self.shipping_method.id,
                "name": self.shipping_method.name,
                "price": str(self.shipping_method.price),
                "days": self.shipping_method.days,
            },
            "payment_method": self.payment_method,
            "discount_percent": str(self.discount_percent),
            "subtotal": str(self.subtotal),
            "shipping_cost": str(self.shipping_cost),
            "discount": str(self.discount),
            "total": str(self.total),
            "payable_total": str(self.payable_total),
            "display": {
                "subtotal": format_currency(self.subtotal),
                "shipping_cost": format_currency(self.shipping_cost),
                "discount": f"-{format_currency(self.discount)}",
                "total": format_currency(self.total),
            },
            "installments": [
                {"count": o["count"], "amount": str(o["amount"]), "display": o["display"]}
                for o in installment_options(self.total, settings.MAX_INSTALLMENTS)
            ],
        }


def compute_checkout(cart: Cart, shipping_method: Optional[str], payment_method: Optional[str],
                     rates: Optional[Dict[str, Decimal]] = None) -> CheckoutOrderDraft:
    """
    Build the checkout draft. Raises EmptyCartError or MissingSelectionError
    before anything else happens.
    """
    if cart is None or cart.is_empty():
        raise EmptyCartError("Cart is empty")
    shipping = get_shipping_method(shipping_method)
    payment = normalize_payment_method(payment_method)

    subtotal = cart.get_total()
    percent = discount_rate(payment, rates)
    discount = percentage_of(subtotal, percent)
    total = subtotal + shipping.price - discount
    return CheckoutOrderDraft(
        items=cart.snapshot(),
        shipping_method=shipping,
        payment_method=payment,
        subtotal=subtotal,
        shipping_cost=shipping.price,
        discount=discount,
        total=total,
        discount_percent=percent,
    )


def default_back_urls(base_url: Optional[str] = None) -> Dict[str, str]:
    base = (base_url or settings.FRONTEND_URL).rstrip("/")
    return {
        "success": f"{base}/checkout/success",
        "failure": f"{base}/checkout/failure",
        "pending": f"{base}/checkout/pending",
    }


def submit_checkout(cart: Cart, shipping_method: Optional[str], payment_method: Optional[str],
                    buyer: Dict[str, Any], *, create_order: Callable[[CheckoutOrderDraft], Dict[str, Any]],
                    gateway: Any, back_urls: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Validate, create the order, then ask the gateway for a PIX charge (pix) or
    a Checkout Pro preference (card / boleto). The cart is cleared only after
    both collaborators succeed. Validation errors are raised before either
    collaborator is called; collaborator errors propagate unchanged.
    """
    draft = compute_checkout(cart, shipping_method, payment_method)
    draft.buyer = dict(buyer or {})

    order = create_order(draft)
    order_id = order.get("id")
    logger.info("Order %s created (%s, %s, total=%s)", order_id, draft.shipping_method.id,
                draft.payment_method, draft.payable_total)

    if draft.payment_method == PIX:
        payment = gateway.create_pix_payment(
            draft.payable_total,
            draft.buyer,
            f"Pedido #{order_id} - {settings.STORE_NAME}",
            order_id,
        )
    else:
        payment = gateway.create_preference(
            draft.gateway_items(),
            draft.buyer,
            back_urls or default_back_urls(),
            order_id,
        )

    cart.clear()
    return {"draft": draft, "order": order, "payment": payment}
