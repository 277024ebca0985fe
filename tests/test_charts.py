from __future__ import annotations

import pytest

from projest import charts
from projest.reporting import MonthBucket, MonthlySeries

pytest.importorskip("matplotlib")


def _series(*amounts):
    return MonthlySeries(buckets=tuple(MonthBucket(period=f"M{i}", amount=a, count=1) for i, a in enumerate(amounts)))


def test_bar_chart_is_png():
    image = charts.monthly_bar_chart(_series(100, 0, 250), "Revenue Breakdown")

    assert charts.charts_available()
    assert image[:8] == b"\x89PNG\r\n\x1a\n"


def test_no_chart_for_empty_series():
    assert charts.monthly_bar_chart(_series(0, 0), "Empty") is None


def test_no_chart_without_matplotlib(monkeypatch):
    monkeypatch.setattr(charts, "plt", None)

    assert not charts.charts_available()
    assert charts.monthly_bar_chart(_series(10), "Any") is None
