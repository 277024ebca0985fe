"""Numeric coercion helpers shared by the aggregation modules."""

from __future__ import annotations

import math


def to_number(value: object | None) -> float:
    """Coerce ``value`` to a float, treating blanks, ``None`` and NaN as ``0.0``.

    Strings may carry a ``$`` prefix and thousands separators (``"$1,250.50"``).
    """

    if value is None or isinstance(value, bool):
        return float(value or 0)
    if isinstance(value, (int, float)):
        numeric = float(value)
    else:
        text = str(value).replace("$", "").replace(",", "").strip()
        if not text:
            return 0.0
        try:
            numeric = float(text)
        except ValueError:
            return 0.0
    if math.isnan(numeric) or math.isinf(numeric):
        return 0.0
    return numeric


def round_half_up(value: float) -> int:
    # -2.5 -> -2 and 2.5 -> 3, the same as JavaScript's Math.round
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return part / whole * 100.0


def rounded_percentage(part: float, whole: float) -> int:
    return round_half_up(percentage(part, whole))


__all__ = ["to_number", "round_half_up", "percentage", "rounded_percentage"]
