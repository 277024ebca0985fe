from __future__ import annotations

import math

import pytest

from projest.errors import ValidationError
from projest.models import (
    CostCategory,
    FixedItem,
    LaborItem,
    MaterialItem,
    OverheadItem,
    categories_from_rows,
    line_item_from_dict,
)
from projest.pricing import (
    category_breakdown,
    category_total,
    compute_totals,
    default_category_name,
    resource_cost,
    validate_contingency,
)


def test_single_labor_item_with_ten_percent_contingency():
    categories = [{"category": "Labor", "items": [{"hours": 10, "rate": 50, "total": 500}]}]

    totals = compute_totals(categories, 10)

    assert totals.subtotal == 500
    assert totals.contingency_amount == 50
    assert totals.final_cost == 550


def test_subtotal_is_sum_of_category_totals(categories):
    totals = compute_totals(categories, 0)

    assert [category_total(c) for c in categories] == [1300, 600, 300]
    assert totals.subtotal == sum(category_total(c) for c in categories) == 2200
    assert totals.final_cost == totals.subtotal
    assert totals.contingency_amount == 0


@pytest.mark.parametrize("pct", [0, 12.5, 100])
def test_final_cost_adds_contingency_share(categories, pct):
    totals = compute_totals(categories, pct)

    assert math.isclose(totals.final_cost, totals.subtotal + totals.subtotal * pct / 100)


def test_each_variant_computes_its_own_total():
    assert LaborItem("Dev", hours=8, rate=95).total() == 760
    assert MaterialItem("Cable", quantity=12, unit_cost=2.5).total() == 30
    assert OverheadItem("Rent", months=6, monthly_cost=1200).total() == 7200


def test_empty_category_totals_zero():
    assert CostCategory("Other").total == 0
    assert compute_totals([], 15).final_cost == 0


def test_missing_numbers_count_as_zero():
    items = [
        {"hours": 10},
        {"quantity": None, "unitCost": "12"},
        {"months": "", "monthlyCost": float("nan")},
        {"name": "Blank"},
    ]
    category = CostCategory.from_dict({"category": "Mixed", "items": items})

    assert [item.total() for item in category.items] == [0, 0, 0, 0]
    assert category.total == 0
    assert not math.isnan(compute_totals([category], 10).final_cost)


def test_line_item_shape_is_picked_from_populated_pair():
    assert isinstance(line_item_from_dict({"hours": 1, "rate": 2}), LaborItem)
    assert isinstance(line_item_from_dict({"quantity": 1, "unitCost": 2}), MaterialItem)
    assert isinstance(line_item_from_dict({"months": 1, "monthlyCost": 2}), OverheadItem)
    assert isinstance(line_item_from_dict({"type": "material", "hours": 3}), MaterialItem)
    assert line_item_from_dict({"unit_cost": "$1,200", "quantity": 2}).total() == 2400


@pytest.mark.parametrize("value", [-1, 100.5, "abc", None, float("nan"), True])
def test_contingency_outside_range_is_rejected(categories, value):
    with pytest.raises(ValidationError):
        compute_totals(categories, value)


def test_contingency_is_not_clamped():
    assert validate_contingency("25") == 25.0
    with pytest.raises(ValidationError):
        validate_contingency(101)


def test_category_breakdown_shares(categories):
    shares = category_breakdown(categories)

    assert [s.name for s in shares] == ["Labor", "Materials", "Overhead"]
    assert math.isclose(sum(s.share_pct for s in shares), 100.0)
    assert category_breakdown([CostCategory("Empty")])[0].share_pct == 0


def test_default_category_names():
    assert default_category_name(1) == "Labor"
    assert default_category_name(6) == "Other"
    assert default_category_name(7) == "Category 7"


def test_resource_cost_prefers_stored_total():
    assert resource_cost(3, 20, total=75) == 75
    assert resource_cost(3, 20) == 60
    assert resource_cost(None, 20) == 20
    assert resource_cost(0, 20) == 20


def test_bare_estimated_cost_is_a_fixed_item():
    item = line_item_from_dict({"description": "License", "estimatedCost": "$1,200"})

    assert item == FixedItem("License", amount=1200)
    assert item.total() == 1200
    assert item.to_dict() == {"type": "fixed", "name": "License", "amount": 1200}


def test_flat_rows_group_by_category_in_first_seen_order():
    rows = [
        {"category": "Design", "description": "Mockups", "estimatedCost": 300},
        {"category": "Labor", "items": [{"hours": 2, "rate": 50}]},
        {"category": "Design", "description": "Review", "estimatedCost": 200},
        {"description": "Misc", "estimatedCost": 40},
    ]

    categories = categories_from_rows(rows)

    assert [c.name for c in categories] == ["Design", "Labor", "Uncategorized"]
    assert [item.name for item in categories[0].items] == ["Mockups", "Review"]
    assert compute_totals(categories, 0).subtotal == 640
