"""
Report statistics over project, estimation and team-member snapshots.

Four report types are supported:

overview
    total revenue (sum of final costs), active projects, team size, average
    project value, a six-month cost series and the team's role mix.
financial
    a twelve-month revenue series, per-estimation profitability and overall
    revenue / cost / profit / margin.
resources
    per-member project count, logged labor hours and labor cost, plus the
    team's role mix and the utilization and allocated cost of every
    team member and resource across estimation allocations.
projects
    status distribution over Completed / In Progress / Planning and the five
    most recently listed projects.

Month buckets
-------------
Estimations are bucketed by the calendar month of ``created_at`` only; the
year is ignored, so March 2023 and March 2024 land in the same bucket.
:class:`MonthlySeries` reports the years that were merged and a warning is
logged whenever more than one year is present. Records created in a month past
the report's bucket count are not counted in the series.

Every computation is a single pass over in-memory snapshots; callers are
responsible for narrowing the snapshots to one owner and one date range (see
:func:`resolve_date_range` and :func:`select_in_range`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import ClassVar, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

import pandas as pd

from .allocation import allocated_cost, available_resources, average_utilization, resource_utilization
from .dashboard import ACTIVE_PROJECT_STATUSES
from .errors import ValidationError
from .models import Estimation, LaborItem, Project, Resource, TeamMember, coerce_all, to_datetime
from .numeric import round_half_up, rounded_percentage

logger = logging.getLogger(__name__)

REPORT_TYPES: Tuple[str, ...] = ("overview", "financial", "resources", "projects")
DATE_RANGE_CHOICES: Tuple[str, ...] = ("7days", "30days", "90days", "1year", "custom")
DEFAULT_DATE_RANGE = "30days"

MONTH_NAMES: Tuple[str, ...] = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
MONTH_BUCKETS: Dict[str, int] = {"overview": 6, "financial": 12}

STATUS_LABELS: Tuple[str, ...] = ("Completed", "In Progress", "Planning")
RECENT_PROJECT_LIMIT = 5

ROLE_GROUPS: Dict[str, str] = {
    "developer": "Development",
    "analyst": "Development",
    "designer": "Design",
    "manager": "Management",
    "consultant": "Consulting",
}

_RANGE_DAYS = {"7days": 7, "30days": 30, "90days": 90}

R = TypeVar("R")


# ---------------------------------------------------------------------------
# Date ranges
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DateRange:
    label: str
    start: datetime
    end: datetime

    def contains(self, moment: Optional[datetime]) -> bool:
        return moment is not None and self.start <= moment <= self.end


def resolve_date_range(
    label: Optional[str] = DEFAULT_DATE_RANGE,
    now: Optional[datetime] = None,
    start: object = None,
    end: object = None,
) -> DateRange:
    """
    Turn a range label into concrete bounds ending at ``now``.

    ``custom`` requires explicit ``start`` and ``end``; any other unknown label
    falls back to the last 30 days.
    """

    key = (label or DEFAULT_DATE_RANGE).strip().lower()
    end_at = to_datetime(now) or datetime.now()
    if key == "custom":
        custom_start = to_datetime(start)
        custom_end = to_datetime(end)
        if custom_start is None or custom_end is None:
            raise ValidationError("A custom date range needs both a start and an end date")
        if custom_end < custom_start:
            raise ValidationError("End date must be after start date")
        return DateRange(label=key, start=custom_start, end=custom_end)
    if key == "1year":
        try:
            start_at = end_at.replace(year=end_at.year - 1)
        except ValueError:  # Feb 29
            start_at = end_at.replace(year=end_at.year - 1, day=28)
        return DateRange(label=key, start=start_at, end=end_at)
    if key not in _RANGE_DAYS:
        logger.debug("Unknown date range %r; using %s", label, DEFAULT_DATE_RANGE)
        key = DEFAULT_DATE_RANGE
    return DateRange(label=key, start=end_at - timedelta(days=_RANGE_DAYS[key]), end=end_at)


def select_in_range(records: Iterable[R], date_range: DateRange) -> List[R]:
    """Keep records whose ``created_at`` falls inside ``date_range`` (undated records are dropped)."""

    return [record for record in records if date_range.contains(getattr(record, "created_at", None))]


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonthBucket:
    period: str
    amount: float
    count: int


@dataclass(frozen=True)
class MonthlySeries:
    buckets: Tuple[MonthBucket, ...]
    merged_years: Tuple[int, ...] = ()

    @property
    def years_collide(self) -> bool:
        return len(self.merged_years) > 1


def monthly_series(estimations: Sequence[Estimation], months: int = 6) -> MonthlySeries:
    """Sum final cost and count estimations per calendar month (January first)."""

    months = max(1, min(12, int(months)))
    frame = pd.DataFrame(
        {
            "CREATED_AT": pd.to_datetime([e.created_at for e in estimations], errors="coerce"),
            "FINAL_COST": [float(e.final_cost) for e in estimations],
        }
    )
    frame = frame.dropna(subset=["CREATED_AT"]).copy()
    if frame.empty:
        buckets = tuple(MonthBucket(period=MONTH_NAMES[i], amount=0.0, count=0) for i in range(months))
        return MonthlySeries(buckets=buckets)

    frame["MONTH"] = frame["CREATED_AT"].dt.month.astype(int)
    years = tuple(sorted(int(year) for year in frame["CREATED_AT"].dt.year.unique()))
    if len(years) > 1:
        logger.warning(
            "Monthly buckets ignore the year: estimations from %s share calendar-month buckets",
            ", ".join(str(year) for year in years),
        )

    grouped = frame.groupby("MONTH")["FINAL_COST"].agg(["sum", "count"])
    buckets = []
    for index in range(months):
        month = index + 1
        if month in grouped.index:
            amount = float(grouped.at[month, "sum"])
            count = int(grouped.at[month, "count"])
        else:
            amount, count = 0.0, 0
        buckets.append(MonthBucket(period=MONTH_NAMES[index], amount=amount, count=count))
    return MonthlySeries(buckets=tuple(buckets), merged_years=years)


@dataclass(frozen=True)
class ProjectProfitability:
    project_name: str
    revenue: float
    cost: float
    profit: float
    margin: int


def profitability(estimation: Estimation) -> ProjectProfitability:
    """Profit is final cost minus pre-contingency cost; margin is 0 when final cost is 0."""

    revenue = float(estimation.final_cost)
    cost = float(estimation.total_cost)
    profit = revenue - cost
    margin = round_half_up(profit / revenue * 100) if revenue > 0 else 0
    return ProjectProfitability(
        project_name=estimation.project_name,
        revenue=revenue,
        cost=cost,
        profit=profit,
        margin=margin,
    )


@dataclass(frozen=True)
class StatusShare:
    status: str
    count: int
    percentage: int


def _status_label(status: str) -> str:
    return status.replace("_", " ").strip().lower()


def status_distribution(projects: Sequence[Project]) -> List[StatusShare]:
    """
    Count projects per display status and express each as a percent of the counted total.

    Only the statuses in :data:`STATUS_LABELS` are counted; on-hold and cancelled
    projects are left out of both the counts and the denominator, so the
    percentages sum to roughly 100 whenever anything was counted.
    """

    counts = {label: 0 for label in STATUS_LABELS}
    lookup = {label.lower(): label for label in STATUS_LABELS}
    for project in projects:
        label = lookup.get(_status_label(project.status))
        if label is not None:
            counts[label] += 1
    counted = sum(counts.values())
    return [
        StatusShare(status=label, count=counts[label], percentage=rounded_percentage(counts[label], counted))
        for label in STATUS_LABELS
    ]


@dataclass(frozen=True)
class RoleShare:
    name: str
    count: int
    value: int


def role_allocation(team_members: Sequence[TeamMember]) -> List[RoleShare]:
    """Share of the team in each role group, in order of first appearance."""

    counts: Dict[str, int] = {}
    for member in team_members:
        group = ROLE_GROUPS.get(member.role, "Other")
        counts[group] = counts.get(group, 0) + 1
    total = len(team_members)
    return [RoleShare(name=name, count=count, value=rounded_percentage(count, total)) for name, count in counts.items()]


@dataclass(frozen=True)
class RecentProject:
    name: str
    status: str
    budget: float
    actual: float
    start_date: Optional[datetime]
    end_date: Optional[datetime]


def recent_projects(
    projects: Sequence[Project],
    estimations: Sequence[Estimation],
    limit: int = RECENT_PROJECT_LIMIT,
) -> List[RecentProject]:
    """The last ``limit`` projects in snapshot order, with the final cost of their first estimation."""

    rows = []
    for project in list(projects)[-limit:] if limit > 0 else []:
        actual = next(
            (e.final_cost for e in estimations if project.id and e.project_id == project.id),
            0.0,
        )
        rows.append(
            RecentProject(
                name=project.name,
                status=project.status,
                budget=float(project.estimated_budget),
                actual=float(actual),
                start_date=project.start_date,
                end_date=project.end_date,
            )
        )
    return rows


@dataclass(frozen=True)
class TeamPerformance:
    name: str
    role: str
    projects: int
    hours: float
    cost: float


def team_performance(
    team_members: Sequence[TeamMember],
    projects: Sequence[Project],
    estimations: Sequence[Estimation],
) -> List[TeamPerformance]:
    """
    Per-member project count and labor booked against them.

    Projects count when the member id appears in the project team. Hours are
    summed from labor line items whose name matches the member name
    (case-insensitive) and costed at the member's hourly rate.
    """

    hours_by_name: Dict[str, float] = {}
    for estimation in estimations:
        for category in estimation.categories:
            for item in category.items:
                if isinstance(item, LaborItem) and item.name:
                    key = item.name.strip().lower()
                    hours_by_name[key] = hours_by_name.get(key, 0.0) + float(item.hours or 0)

    rows = []
    for member in team_members:
        project_count = sum(1 for project in projects if member.id and member.id in project.team)
        hours = hours_by_name.get(member.name.strip().lower(), 0.0)
        rows.append(
            TeamPerformance(
                name=member.name,
                role=member.role,
                projects=project_count,
                hours=hours,
                cost=hours * float(member.hourly_rate),
            )
        )
    return rows


@dataclass(frozen=True)
class ResourceUsage:
    name: str
    kind: str
    utilization: float
    allocated_cost: float
    available: bool


def resource_usage(
    team_members: Sequence[TeamMember],
    resources: Sequence[Resource],
    estimations: Sequence[Estimation],
) -> List[ResourceUsage]:
    """
    Utilization and allocated cost of every team member and resource.

    Allocations are collected from all estimations. Utilization may exceed 100
    when an entity is over-allocated; such an entity is not available.
    """

    allocations = [alloc for estimation in estimations for alloc in estimation.allocations]
    entities = [entity for entity in (*team_members, *resources) if entity.id]
    by_id = {entity.id: entity for entity in entities}
    open_ids = {entity.id for entity in available_resources(entities, allocations)}
    rows = []
    for entity in entities:
        own = [alloc for alloc in allocations if alloc.resource_id == entity.id]
        rows.append(
            ResourceUsage(
                name=entity.name,
                kind=entity.role if isinstance(entity, TeamMember) else entity.kind,
                utilization=resource_utilization(entity.id, own),
                allocated_cost=allocated_cost(own, by_id),
                available=entity.id in open_ids,
            )
        )
    return rows


# ---------------------------------------------------------------------------
# Report payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OverviewReport:
    total_revenue: float
    active_projects: int
    team_members: int
    avg_project_value: float
    project_costs_over_time: MonthlySeries
    resource_allocation: Tuple[RoleShare, ...]
    date_range: Optional[DateRange] = None

    report_type: ClassVar[str] = "overview"


@dataclass(frozen=True)
class FinancialReport:
    total_revenue: float
    total_costs: float
    net_profit: float
    profit_margin: int
    revenue_breakdown: MonthlySeries
    project_profitability: Tuple[ProjectProfitability, ...]
    date_range: Optional[DateRange] = None

    report_type: ClassVar[str] = "financial"


@dataclass(frozen=True)
class ResourcesReport:
    team_performance: Tuple[TeamPerformance, ...]
    resource_allocation: Tuple[RoleShare, ...]
    resource_usage: Tuple[ResourceUsage, ...] = ()
    average_utilization: float = 0.0
    total_allocated_cost: float = 0.0
    date_range: Optional[DateRange] = None

    report_type: ClassVar[str] = "resources"


@dataclass(frozen=True)
class ProjectsReport:
    project_status: Tuple[StatusShare, ...]
    recent_projects: Tuple[RecentProject, ...]
    date_range: Optional[DateRange] = None

    report_type: ClassVar[str] = "projects"


ReportData = Union[OverviewReport, FinancialReport, ResourcesReport, ProjectsReport]


def overview_report(projects, estimations, team_members, date_range=None) -> OverviewReport:
    total_revenue = float(sum(e.final_cost for e in estimations))
    return OverviewReport(
        total_revenue=total_revenue,
        active_projects=sum(1 for p in projects if p.status in ACTIVE_PROJECT_STATUSES),
        team_members=len(team_members),
        avg_project_value=total_revenue / len(estimations) if estimations else 0.0,
        project_costs_over_time=monthly_series(estimations, MONTH_BUCKETS["overview"]),
        resource_allocation=tuple(role_allocation(team_members)),
        date_range=date_range,
    )


def financial_report(projects, estimations, date_range=None) -> FinancialReport:
    rows = tuple(profitability(e) for e in estimations)
    total_revenue = float(sum(row.revenue for row in rows))
    total_costs = float(sum(row.cost for row in rows))
    net_profit = total_revenue - total_costs
    return FinancialReport(
        total_revenue=total_revenue,
        total_costs=total_costs,
        net_profit=net_profit,
        profit_margin=round_half_up(net_profit / total_revenue * 100) if total_revenue > 0 else 0,
        revenue_breakdown=monthly_series(estimations, MONTH_BUCKETS["financial"]),
        project_profitability=rows,
        date_range=date_range,
    )


def resources_report(team_members, projects, estimations, date_range=None, resources=()) -> ResourcesReport:
    usage = tuple(resource_usage(team_members, resources, estimations))
    allocations = [alloc for estimation in estimations for alloc in estimation.allocations]
    entity_ids = [entity.id for entity in (*team_members, *resources) if entity.id]
    return ResourcesReport(
        team_performance=tuple(team_performance(team_members, projects, estimations)),
        resource_allocation=tuple(role_allocation(team_members)),
        resource_usage=usage,
        average_utilization=average_utilization(entity_ids, allocations),
        total_allocated_cost=float(sum(row.allocated_cost for row in usage)),
        date_range=date_range,
    )


def projects_report(projects, estimations, date_range=None) -> ProjectsReport:
    return ProjectsReport(
        project_status=tuple(status_distribution(projects)),
        recent_projects=tuple(recent_projects(projects, estimations)),
        date_range=date_range,
    )


def normalize_report_type(report_type: Optional[str]) -> str:
    key = (report_type or "").strip().lower()
    if key not in REPORT_TYPES:
        logger.info("Unknown report type %r; defaulting to overview", report_type)
        return "overview"
    return key


def compute_report(
    report_type: Optional[str],
    projects: Iterable[Union[Project, Mapping[str, object]]],
    estimations: Iterable[Union[Estimation, Mapping[str, object]]],
    team_members: Iterable[Union[TeamMember, Mapping[str, object]]] = (),
    date_range: Optional[DateRange] = None,
    resources: Iterable[Union[Resource, Mapping[str, object]]] = (),
) -> ReportData:
    """Compute the statistics for ``report_type`` from snapshots the caller already narrowed.

    ``resources`` only feeds the resources report.
    """

    kind = normalize_report_type(report_type)
    project_rows = coerce_all(Project, list(projects or ()))
    estimation_rows = coerce_all(Estimation, list(estimations or ()))
    member_rows = coerce_all(TeamMember, list(team_members or ()))
    resource_rows = coerce_all(Resource, list(resources or ()))
    logger.debug(
        "report %s: projects=%d estimations=%d team_members=%d",
        kind,
        len(project_rows),
        len(estimation_rows),
        len(member_rows),
    )

    if kind == "financial":
        return financial_report(project_rows, estimation_rows, date_range)
    if kind == "resources":
        return resources_report(member_rows, project_rows, estimation_rows, date_range, resource_rows)
    if kind == "projects":
        return projects_report(project_rows, estimation_rows, date_range)
    return overview_report(project_rows, estimation_rows, member_rows, date_range)


__all__ = [
    "REPORT_TYPES",
    "DATE_RANGE_CHOICES",
    "MONTH_NAMES",
    "MONTH_BUCKETS",
    "STATUS_LABELS",
    "DateRange",
    "resolve_date_range",
    "select_in_range",
    "MonthBucket",
    "MonthlySeries",
    "monthly_series",
    "ProjectProfitability",
    "profitability",
    "StatusShare",
    "status_distribution",
    "RoleShare",
    "role_allocation",
    "RecentProject",
    "recent_projects",
    "TeamPerformance",
    "team_performance",
    "ResourceUsage",
    "resource_usage",
    "OverviewReport",
    "FinancialReport",
    "ResourcesReport",
    "ProjectsReport",
    "ReportData",
    "normalize_report_type",
    "compute_report",
]
