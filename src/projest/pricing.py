"""Cost aggregation: line items to category totals, subtotal, contingency and final cost."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import ValidationError
from .models import CostCategory, CostTotals
from .numeric import percentage, to_number

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAMES: Tuple[str, ...] = ("Labor", "Materials", "Equipment", "Overhead", "Services", "Other")

CategoryLike = Union[CostCategory, Mapping[str, object]]


@dataclass(frozen=True)
class CategoryShare:
    name: str
    total: float
    share_pct: float


def default_category_name(position: int) -> str:
    """Name offered for the ``position``-th category (1-based) a user adds."""

    if 1 <= position <= len(DEFAULT_CATEGORY_NAMES):
        return DEFAULT_CATEGORY_NAMES[position - 1]
    return f"Category {position}"


def validate_contingency(value: object) -> float:
    """
    Return ``value`` as a percentage in ``[0, 100]``.

    Out-of-range or non-numeric values raise :class:`ValidationError`; callers
    are expected to clamp user input before it reaches the aggregator.
    """

    if isinstance(value, bool):
        raise ValidationError(f"Contingency must be a number, got {value!r}")
    try:
        pct = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError(f"Contingency must be a number, got {value!r}") from None
    if math.isnan(pct) or pct < 0 or pct > 100:
        raise ValidationError(f"Contingency must be between 0 and 100, got {value!r}")
    return pct


def _categories(categories: Iterable[CategoryLike]) -> List[CostCategory]:
    return [CostCategory.coerce(category) for category in categories or ()]


def category_total(category: CategoryLike) -> float:
    return CostCategory.coerce(category).total


def compute_subtotal(categories: Iterable[CategoryLike]) -> float:
    return float(sum(category_total(category) for category in _categories(categories)))


def compute_totals(categories: Iterable[CategoryLike], contingency_percent: object) -> CostTotals:
    """Roll line items up into the subtotal, contingency amount and final cost."""

    pct = validate_contingency(contingency_percent)
    subtotal = compute_subtotal(categories)
    contingency_amount = subtotal * pct / 100
    totals = CostTotals(
        subtotal=subtotal,
        contingency_amount=contingency_amount,
        final_cost=subtotal + contingency_amount,
    )
    logger.debug(
        "totals: subtotal=%.2f contingency=%.1f%% (%.2f) final=%.2f",
        totals.subtotal,
        pct,
        totals.contingency_amount,
        totals.final_cost,
    )
    return totals


def category_breakdown(categories: Sequence[CategoryLike]) -> List[CategoryShare]:
    """Per-category totals with their share of the subtotal (0 when the subtotal is 0)."""

    resolved = _categories(categories)
    subtotal = sum(category.total for category in resolved)
    return [
        CategoryShare(name=category.name, total=category.total, share_pct=percentage(category.total, subtotal))
        for category in resolved
    ]


def resource_cost(quantity: object, unit_cost: object, total: Optional[object] = None) -> float:
    """Cost of a resource line: the stored total when present, else ``unit_cost * quantity``.

    A missing or zero quantity counts as one unit.
    """

    stored = to_number(total)
    if stored:
        return stored
    return to_number(unit_cost) * (to_number(quantity) or 1.0)


__all__ = [
    "DEFAULT_CATEGORY_NAMES",
    "CategoryShare",
    "default_category_name",
    "validate_contingency",
    "category_total",
    "compute_subtotal",
    "compute_totals",
    "category_breakdown",
    "resource_cost",
]
