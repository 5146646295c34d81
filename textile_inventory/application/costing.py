"""Weighted-average costing for inventory lines."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def to_money(value: Optional[Number]) -> Decimal:
    """Coerce to a Decimal rounded half-up to cents; None becomes 0.00."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def weighted_average_cost(old_quantity: int, old_cost: Number,
                          incoming_quantity: int, incoming_cost: Number) -> Decimal:
    """
    Blend the current unit cost with an incoming lot, weighted by quantity.

    An empty (or negative) starting balance takes the incoming cost as is;
    a non-positive incoming quantity leaves the current cost unchanged.
    """
    old_cost = to_money(old_cost)
    incoming_cost = to_money(incoming_cost)
    if incoming_quantity <= 0:
        return old_cost
    if old_quantity <= 0:
        return incoming_cost
    total_value = old_quantity * old_cost + incoming_quantity * incoming_cost
    return to_money(total_value / (old_quantity + incoming_quantity))


def sale_price_for(cost: Number, markup: Number) -> Decimal:
    return to_money(to_money(cost) * Decimal(str(markup)))


def unit_cost_of(total_cost: Optional[Number], quantity: int,
                 fallback: Optional[Number] = None) -> Optional[Decimal]:
    """Spread a lot's total cost over its quantity, or use the fallback."""
    if total_cost is not None and quantity > 0 and to_money(total_cost) > 0:
        return to_money(to_money(total_cost) / quantity)
    return to_money(fallback) if fallback is not None else None
