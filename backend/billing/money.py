# Overview: Decimal rounding rules shared by the ledger and inventory.

"""
Rounding rules (authoritative)

- Money (balances, prices, totals) is rounded to 2 places, half-up.
- Stock is tracked in bags, rounded to 4 places, half-up.
- Line quantities (kg) are rounded to 3 places and prices to 2 on input,
  before any total is computed, so stored lines always sum to the stored
  document total.
- kg -> bags conversion divides by the configured KG_PER_BAG (30) and rounds
  once, at conversion time. Reversals re-run the same conversion, so an
  apply followed by its reversal always cancels exactly.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")
BAG_PLACES = Decimal("0.0001")
DEFAULT_KG_PER_BAG = 30


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    try:
        # str() keeps float inputs like 0.1 from carrying binary noise
        return Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValueError(f"not a number: {value!r}")


def to_money(value) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def to_bags(value) -> Decimal:
    return to_decimal(value).quantize(BAG_PLACES, rounding=ROUND_HALF_UP)


def to_quantity(value) -> Decimal:
    """Line quantity in kg, at the 3 places the line columns store."""
    return to_decimal(value).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def kg_to_bags(quantity_kg, kg_per_bag: int = DEFAULT_KG_PER_BAG) -> Decimal:
    return to_bags(to_decimal(quantity_kg) / Decimal(kg_per_bag))


def as_float(value) -> float | None:
    """JSON-friendly number for to_dict()."""
    if value is None:
        return None
    return float(value)
