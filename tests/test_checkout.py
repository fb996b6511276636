# tests/test_checkout.py
from decimal import Decimal

import pytest

from storefront.config import settings
from storefront.models.cart import Cart, CartItem
from storefront.services.checkout import (
    EmptyCartError,
    MissingSelectionError,
    compute_checkout,
    submit_checkout,
)
from storefront.services.payment import PaymentError, build_preference_payload

from conftest import FakeGateway


@pytest.fixture
def cart():
    c = Cart(id="cart-1")
    c.add_item(CartItem(product_id=1, name="Notebook", unit_price=Decimal("100.00"), quantity=2))
    c.add_item(CartItem(product_id=2, name="Mouse", unit_price=Decimal("49.90"), quantity=1))
    return c


def test_pix_discount_and_rounding(cart):
    draft = compute_checkout(cart, "standard", "pix")
    assert draft.subtotal == Decimal("249.90")
    assert draft.shipping_cost == Decimal("30.00")
    assert draft.discount == Decimal("12.495")
    assert draft.total == Decimal("267.405")
    assert draft.payable_total == Decimal("267.41")

    payload = draft.to_order_payload()
    assert payload["total_amount"] == "267.41"
    assert payload["discount"] == "12.50"
    assert payload["subtotal"] == "249.90"
    assert payload["shipping_method"] == "standard"

    shown = draft.to_dict()
    assert shown["display"]["total"] == "R$ 267,41"
    assert shown["display"]["discount"] == "-R$ 12,50"
    assert shown["installments"][9]["display"] == "10x de R$ 26,74 sem juros"


@pytest.mark.parametrize("method", ["boleto", "credit_card", "CREDIT_CARD"])
def test_no_discount_for_boleto_and_card(cart, method):
    draft = compute_checkout(cart, "standard", method)
    assert draft.discount == Decimal("0")
    assert draft.total == Decimal("279.90")


def test_boleto_discount_is_configurable(cart, monkeypatch):
    monkeypatch.setattr(settings, "BOLETO_DISCOUNT_PERCENT", "3")
    draft = compute_checkout(cart, "economic", "boleto")
    assert draft.discount == Decimal("7.497")
    assert draft.payable_total == Decimal("262.40")


def _preference_sum(draft):
    payload = build_preference_payload(draft.gateway_items(), {}, {}, 1, "https://loja.example.com/api/payment/webhook")
    return sum(Decimal(str(it["unit_price"])) * it["quantity"] for it in payload["items"])


def test_discounted_preference_charges_the_order_total(cart, monkeypatch):
    monkeypatch.setattr(settings, "BOLETO_DISCOUNT_PERCENT", "3")
    draft = compute_checkout(cart, "economic", "boleto")
    assert _preference_sum(draft) == draft.payable_total == Decimal("262.40")
    assert len(draft.gateway_items()) == 1


def test_undiscounted_preference_lists_items_and_shipping(cart):
    draft = compute_checkout(cart, "economic", "credit_card")
    assert _preference_sum(draft) == draft.payable_total == Decimal("269.90")
    assert [it["product_id"] for it in draft.gateway_items()] == [1, 2, "shipping-economic"]


def test_shipping_methods(cart):
    assert compute_checkout(cart, "economic", "credit_card").total == Decimal("269.90")
    assert compute_checkout(cart, "express", "credit_card").total == Decimal("299.90")
    # legacy name
    assert compute_checkout(cart, "normal", "credit_card").shipping_method.id == "standard"


def test_empty_cart_is_rejected_first():
    gw = FakeGateway()
    calls = []
    with pytest.raises(EmptyCartError):
        submit_checkout(Cart(), None, None, {}, create_order=lambda d: calls.append(d), gateway=gw)
    assert calls == []
    assert gw.calls == []


@pytest.mark.parametrize("shipping, payment", [
    (None, "pix"),
    ("", "pix"),
    ("teleport", "pix"),
    ("standard", None),
    ("standard", ""),
    ("standard", "cheque"),
])
def test_missing_selection(cart, shipping, payment):
    gw = FakeGateway()
    calls = []
    with pytest.raises(MissingSelectionError):
        submit_checkout(cart, shipping, payment, {}, create_order=lambda d: calls.append(d), gateway=gw)
    assert calls == []
    assert gw.calls == []
    assert not cart.is_empty()


def test_submit_pix_charges_rounded_total_and_clears_cart(cart):
    gw = FakeGateway()
    buyer = {"name": "Maria Silva", "email": "maria@example.com"}
    result = submit_checkout(cart, "standard", "pix", buyer, create_order=lambda d: {"id": 7}, gateway=gw)

    assert gw.calls == [("create_pix_payment", Decimal("267.41"), buyer, "Pedido #7 - TechStore", 7)]
    assert result["payment"]["id"] == "pix-7"
    assert result["order"] == {"id": 7}
    assert cart.is_empty()


def test_submit_card_creates_preference_with_shipping_line(cart):
    gw = FakeGateway()
    seen = []

    def create_order(draft):
        seen.append(draft)
        return {"id": 8}

    result = submit_checkout(cart, "express", "credit_card", {"name": "João"}, create_order=create_order,
                             gateway=gw, back_urls={"success": "s", "failure": "f", "pending": "p"})
    name, items, buyer, back_urls, order_id = gw.calls[0]
    assert name == "create_preference"
    assert order_id == 8
    assert back_urls["success"] == "s"
    assert [i["product_id"] for i in items] == [1, 2, "shipping-express"]
    assert items[-1]["unit_price"] == "50.00"
    assert seen[0].buyer == {"name": "João"}
    assert result["payment"]["id"] == "pref-8"
    assert cart.is_empty()


def test_gateway_failure_keeps_cart(cart):
    gw = FakeGateway()
    gw.fail = True
    orders = []
    with pytest.raises(PaymentError):
        submit_checkout(cart, "standard", "pix", {}, create_order=lambda d: orders.append(d) or {"id": 9}, gateway=gw)
    assert len(orders) == 1
    assert cart.get_total() == Decimal("249.90")
