
from decimal import Decimal

import pytest

from storefront.core.state_machine import InvalidTransition, OptimisticLockError, StateMachine
from storefront.models.order import Order, OrderItem


def test_order_state_transitions_and_history():
    o = Order(user_id="u1", items=[OrderItem(product_id=1, unit_price=Decimal("10.00"), quantity=1)])
    assert o.status == "pending"
    o.transition_to("paid", actor="mercadopago")
    o.transition_to("shipped")
    o.transition_to("delivered")
    assert o.status == "delivered"
    assert o.version == 3
    assert [(h["from"], h["to"]) for h in o.status_history] == [
        ("pending", "paid"), ("paid", "shipped"), ("shipped", "delivered"),
    ]
    assert o.status_history[0]["actor"] == "mercadopago"
    with pytest.raises(InvalidTransition):
        o.transition_to("paid")


@pytest.mark.parametrize("start, target", [
    ("pending", "shipped"),
    ("pending", "refunded"),
    ("shipped", "cancelled"),
    ("cancelled", "paid"),
    ("refunded", "paid"),
    ("returned", "shipped"),
])
def test_disallowed_moves(start, target):
    o = Order(status=start)
    with pytest.raises(InvalidTransition):
        o.transition_to(target)
    assert o.status == start
    assert o.version == 0


def test_same_state_is_a_no_op():
    o = Order(status="paid", version=4)
    o.transition_to("paid")
    assert o.version == 4
    assert o.status_history == []


def test_expected_version_mismatch():
    o = Order(status="pending", version=2)
    with pytest.raises(OptimisticLockError):
        o.transition_to("paid", expected_version=1)
    o.transition_to("paid", expected_version=2)
    assert o.version == 3


def test_state_machine_reports_targets():
    sm = StateMachine("paid", Order.ALLOWED_TRANSITIONS)
    assert sm.allowed_targets() == ["shipped", "cancelled", "refunded"]
    assert sm.can_transition("refunded")
    with pytest.raises(InvalidTransition):
        sm.apply("  ")


def test_order_row_round_trip():
    o = Order(id=5, user_id="u1", items=[OrderItem(product_id=2, name="Mouse", unit_price=Decimal("99.90"), quantity=2)],
              total_amount=Decimal("229.80"))
    o.transition_to("cancelled", actor="u1", meta={"reason": "desisti"})
    row = o.to_dict()
    assert isinstance(row["items"], str)
    back = Order.from_dict(row)
    assert back.items[0].total_price() == Decimal("199.80")
    assert str(back.total_amount) == "229.80"
    assert back.status_history[0]["meta"] == {"reason": "desisti"}
    assert back.version == 1
