# storefront/services/shipping.py
"""
Region-based shipping quotes for the cart page ("calcular frete").

The quote is informational; checkout charges the fixed prices of
`storefront.services.checkout.SHIPPING_METHODS`.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from storefront.core.pricing import format_currency, round_money, to_decimal


@dataclass(frozen=True)
class RegionRate:
    base: Decimal
    per_kg: Decimal
    free_shipping_threshold: Decimal
    min_days: int
    max_days: int


SHIPPING_RATES: Dict[str, RegionRate] = {
    "norte": RegionRate(Decimal("40"), Decimal("2.5"), Decimal("1500"), 7, 12),
    "nordeste": RegionRate(Decimal("35"), Decimal("2.0"), Decimal("1200"), 6, 10),
    "centrooeste": RegionRate(Decimal("30"), Decimal("1.8"), Decimal("1000"), 5, 8),
    "sudeste": RegionRate(Decimal("20"), Decimal("1.2"), Decimal("800"), 2, 5),
    "sul": RegionRate(Decimal("25"), Decimal("1.5"), Decimal("900"), 3, 7),
}

STATE_TO_REGION = {
    **dict.fromkeys(["AC", "AM", "AP", "PA", "RO", "RR", "TO"], "norte"),
    **dict.fromkeys(["AL", "BA", "CE", "MA", "PB", "PE", "PI", "RN", "SE"], "nordeste"),
    **dict.fromkeys(["DF", "GO", "MT", "MS"], "centrooeste"),
    **dict.fromkeys(["ES", "MG", "RJ", "SP"], "sudeste"),
    **dict.fromkeys(["PR", "RS", "SC"], "sul"),
}
DEFAULT_REGION = "sudeste"
DEFAULT_WEIGHT_KG = Decimal("1")


def region_for_state(state: str) -> str:
    return STATE_TO_REGION.get((state or "").strip().upper(), DEFAULT_REGION)


def _days(lo: int, hi: int) -> str:
    return f"{lo} a {hi} dias úteis"


def quote_shipping(items: List[Dict[str, Any]], state: str, total: Any = 0,
                   weights: Optional[Dict[int, Decimal]] = None) -> Dict[str, Any]:
    """
    items: [{"product_id": int, "quantity": int}, ...]
    weights: product id -> kg; products without a weight count as 1 kg.
    Returns {"region", "free_shipping", "options": [{id, name, price, price_display, estimated_days}, ...]}.
    """
    if not items:
        raise ValueError("At least one item is required to quote shipping")
    if not (state or "").strip():
        raise ValueError("State is required to quote shipping")
    weights = weights or {}
    region = region_for_state(state)
    rates = SHIPPING_RATES[region]

    total_weight = Decimal("0")
    for it in items:
        pid = int(it.get("product_id"))
        qty = int(it.get("quantity") or 1)
        total_weight += to_decimal(weights.get(pid, DEFAULT_WEIGHT_KG)) * qty

    free = to_decimal(total or 0) >= rates.free_shipping_threshold
    if free:
        standard = Decimal("0")
        economic = Decimal("0")
    else:
        standard = rates.base + total_weight * rates.per_kg
        economic = max(rates.base * Decimal("0.7"), standard * Decimal("0.7"))
    express = standard * Decimal("1.7")

    def option(method_id, name, price, lo, hi):
        price = round_money(price)
        return {
            "id": method_id,
            "name": name,
            "price": str(price),
            "price_display": format_currency(price),
            "estimated_days": _days(lo, hi),
        }

    return {
        "region": region,
        "free_shipping": free,
        "total_weight_kg": str(total_weight),
        "options": [
            option("economic", "Entrega Econômica", economic, rates.min_days + 3, rates.max_days + 5),
            option("standard", "Entrega Padrão", standard, rates.min_days, rates.max_days),
            option("express", "Entrega Expressa", express, max(1, rates.min_days - 1), max(3, rates.max_days - 2)),
        ],
    }
