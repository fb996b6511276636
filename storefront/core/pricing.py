# storefront/core/pricing.py
"""
Money helpers for the storefront. Every amount is a `Decimal`; floats are only
accepted as input and converted through their string form so that "1999.90"
never turns into 1999.8999999.

There is exactly one rounding rule in the project: ROUND_HALF_UP to two
places (`round_money`). Intermediate values (installments, discounts, totals)
are kept unrounded and only rounded when displayed or when they leave the
process (persisted order totals, gateway amounts).
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List

CURRENCY_SYMBOL = "R$"
CURRENCY_CODE = "BRL"
CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class InvalidAmount(ValueError):
    pass


class InvalidCount(ValueError):
    pass


def to_decimal(value: Any) -> Decimal:
    """
    Parse `value` into a non-negative Decimal.
    Raises InvalidAmount for None, garbage strings, NaN/Infinity and negatives.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidAmount(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if amount < 0:
        raise InvalidAmount(f"Amount must not be negative: {value!r}")
    return amount


def round_money(amount: Any) -> Decimal:
    """Round to cents using ROUND_HALF_UP."""
    return to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(amount: Any) -> str:
    """
    Render an amount the pt-BR way: 1999.9 -> 'R$ 1.999,90'.
    """
    rounded = round_money(amount)
    # format with US separators first, then swap them
    us = f"{rounded:,.2f}"
    br = us.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{CURRENCY_SYMBOL} {br}"


def parse_currency(text: Any) -> Decimal:
    """
    Parse a pt-BR currency string ('R$ 1.999,90', '1999,90', '12,5') back into a Decimal.
    Plain decimal strings with a dot separator ('1999.90') are accepted too.
    """
    if isinstance(text, (Decimal, int, float)) and not isinstance(text, bool):
        return to_decimal(text)
    if not isinstance(text, str):
        raise InvalidAmount(f"Invalid amount: {text!r}")
    cleaned = text.replace(CURRENCY_SYMBOL, "").replace("\xa0", "").replace(" ", "").strip()
    if not cleaned:
        raise InvalidAmount(f"Invalid amount: {text!r}")
    if "," in cleaned:
        # pt-BR: '.' groups thousands, ',' separates cents
        cleaned = cleaned.replace(".", "").replace(",", ".")
    return to_decimal(cleaned)


def compute_installment(total: Any, count: Any) -> Decimal:
    """
    Value of each of `count` equal installments. Not rounded; rounding happens
    when the installment is displayed.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidCount(f"Installment count must be a positive integer: {count!r}")
    return to_decimal(total) / Decimal(count)


def percentage_of(amount: Any, percent: Any) -> Decimal:
    return to_decimal(amount) * to_decimal(percent) / HUNDRED


def apply_percentage_discount(amount: Any, percent: Any) -> Decimal:
    """amount × (1 − percent/100)"""
    return to_decimal(amount) * (Decimal(1) - to_decimal(percent) / HUNDRED)


def installment_options(total: Any, max_count: int = 10) -> List[Dict[str, Any]]:
    """
    Interest-free installment table: 1x .. max_count x.
    Each entry: {"count", "amount" (unrounded), "display"}.
    """
    if isinstance(max_count, bool) or not isinstance(max_count, int) or max_count <= 0:
        raise InvalidCount(f"Installment count must be a positive integer: {max_count!r}")
    out = []
    for n in range(1, max_count + 1):
        each = compute_installment(total, n)
        out.append({
            "count": n,
            "amount": each,
            "display": f"{n}x de {format_currency(each)} sem juros",
        })
    return out
