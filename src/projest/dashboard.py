from __future__ import annotations

from typing import Iterable, Mapping, Union

from .models import DashboardStats, Estimation, EstimationSummary, Project, coerce_all

ACTIVE_PROJECT_STATUSES = frozenset({"planning", "in_progress"})
ACTIVE_ESTIMATION_STATUSES = frozenset({"draft", "in_progress"})


def compute_dashboard_stats(
    projects: Iterable[Union[Project, Mapping[str, object]]],
    estimations: Iterable[Union[Estimation, Mapping[str, object]]],
) -> DashboardStats:
    """Summary counts over already-fetched project and estimation snapshots.

    Pure: nothing is cached between calls, so repeated calls on the same input
    return equal results.
    """

    project_rows = coerce_all(Project, list(projects or ()))
    estimation_rows = coerce_all(Estimation, list(estimations or ()))
    return DashboardStats(
        total_projects=len(project_rows),
        total_estimations=len(estimation_rows),
        total_value=float(sum(e.final_cost for e in estimation_rows)),
        active_projects=sum(1 for p in project_rows if p.status in ACTIVE_PROJECT_STATUSES),
        completed_projects=sum(1 for p in project_rows if p.status == "completed"),
        active_estimations=sum(1 for e in estimation_rows if e.status in ACTIVE_ESTIMATION_STATUSES),
        completed_estimations=sum(1 for e in estimation_rows if e.status == "completed"),
    )


def compute_estimation_summary(
    estimations: Iterable[Union[Estimation, Mapping[str, object]]],
) -> EstimationSummary:
    """Counts, total and average final cost over estimations (average 0 when empty)."""

    rows = coerce_all(Estimation, list(estimations or ()))
    total_value = float(sum(e.final_cost for e in rows))
    return EstimationSummary(
        total_estimations=len(rows),
        total_value=total_value,
        draft_estimations=sum(1 for e in rows if e.status == "draft"),
        completed_estimations=sum(1 for e in rows if e.status == "completed"),
        avg_estimation_value=total_value / len(rows) if rows else 0.0,
    )


__all__ = [
    "ACTIVE_PROJECT_STATUSES",
    "ACTIVE_ESTIMATION_STATUSES",
    "compute_dashboard_stats",
    "compute_estimation_summary",
]
