from decimal import Decimal

import pytest

from textile_inventory.application.costing import sale_price_for, to_money, unit_cost_of, weighted_average_cost


def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money(1.005) == Decimal("1.01")
    assert to_money(None) == Decimal("0.00")


def test_weighted_average_blends_by_quantity():
    assert weighted_average_cost(100, Decimal("10"), 50, Decimal("16")) == Decimal("12.00")


def test_weighted_average_rounds_to_cents():
    # (3 * 1 + 1 * 2) / 4 = 1.25 ; (2 * 1 + 1 * 2) / 3 = 1.333...
    assert weighted_average_cost(3, 1, 1, 2) == Decimal("1.25")
    assert weighted_average_cost(2, 1, 1, 2) == Decimal("1.33")


@pytest.mark.parametrize("old_quantity", [0, -5])
def test_empty_balance_takes_incoming_cost(old_quantity):
    assert weighted_average_cost(old_quantity, Decimal("99"), 10, Decimal("7.5")) == Decimal("7.50")


@pytest.mark.parametrize("incoming_quantity", [0, -3])
def test_non_positive_incoming_keeps_current_cost(incoming_quantity):
    assert weighted_average_cost(40, Decimal("8.25"), incoming_quantity, Decimal("100")) == Decimal("8.25")


def test_sequence_matches_overall_weighted_average():
    lots = [(100, Decimal("10")), (50, Decimal("16")), (30, Decimal("11")), (20, Decimal("20"))]
    quantity, cost = 0, Decimal("0")
    for lot_quantity, lot_cost in lots:
        cost = weighted_average_cost(quantity, cost, lot_quantity, lot_cost)
        quantity += lot_quantity
    expected = sum(q * c for q, c in lots) / sum(q for q, _ in lots)
    assert abs(cost - expected) <= Decimal("0.01")


def test_sale_price_applies_markup():
    assert sale_price_for(Decimal("12.00"), Decimal("1.2")) == Decimal("14.40")
    assert sale_price_for(Decimal("10.00"), "1.3") == Decimal("13.00")


def test_unit_cost_of_spreads_total_or_falls_back():
    assert unit_cost_of(Decimal("720"), 48) == Decimal("15.00")
    assert unit_cost_of(None, 48, fallback=Decimal("12.5")) == Decimal("12.50")
    assert unit_cost_of(Decimal("0"), 48) is None
