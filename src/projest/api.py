"""
Result-returning entry points for the HTTP layer.

Each function wraps one core operation and returns :class:`Ok` with the value
or :class:`Err` with the :class:`~projest.errors.ProjestError` that stopped it.
Only domain errors are captured; anything else is a bug and propagates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Generic, Iterable, Optional, TypeVar, Union

from . import dashboard, pricing, rendering, reporting, timeline
from .errors import ProjestError
from .models import CostTotals, DashboardStats, EstimationSummary

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: ProjestError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error)

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]


def _capture(func: Callable[..., T], *args, **kwargs) -> "Result[T]":
    try:
        return Ok(func(*args, **kwargs))
    except ProjestError as exc:
        return Err(exc)


def compute_totals(categories: Iterable, contingency_percent: object) -> "Result[CostTotals]":
    return _capture(pricing.compute_totals, categories, contingency_percent)


def compute_progress(phases: Iterable) -> "Result[int]":
    return _capture(timeline.compute_progress, phases)


def compute_dashboard_stats(projects: Iterable, estimations: Iterable) -> "Result[DashboardStats]":
    return _capture(dashboard.compute_dashboard_stats, projects, estimations)


def compute_estimation_summary(estimations: Iterable) -> "Result[EstimationSummary]":
    return _capture(dashboard.compute_estimation_summary, estimations)


def compute_report(
    report_type: str,
    projects: Iterable,
    estimations: Iterable,
    team_members: Iterable = (),
    date_range: Optional[reporting.DateRange] = None,
    resources: Iterable = (),
) -> "Result[reporting.ReportData]":
    return _capture(
        reporting.compute_report,
        report_type,
        projects,
        estimations,
        team_members,
        date_range,
        resources=resources,
    )


def render_report(
    report_type: str,
    date_range: Union[reporting.DateRange, str, None],
    data: reporting.ReportData,
    fmt: str = "txt",
    generated_at: Optional[datetime] = None,
) -> "Result[rendering.RenderedReport]":
    return _capture(rendering.render_report, report_type, date_range, data, fmt, generated_at)


__all__ = [
    "Ok",
    "Err",
    "Result",
    "compute_totals",
    "compute_progress",
    "compute_dashboard_stats",
    "compute_estimation_summary",
    "compute_report",
    "render_report",
]
