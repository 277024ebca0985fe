from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional, Union

from .config import Config
from .dashboard import compute_dashboard_stats, compute_estimation_summary
from .models import DashboardStats, Estimation, EstimationSummary
from .pricing import compute_totals, resource_cost, validate_contingency
from .rendering import RenderedReport, render_report
from .reporting import DateRange, ReportData, compute_report, resolve_date_range, select_in_range
from .store import JsonStore
from .timeline import compute_progress

logger = logging.getLogger(__name__)


def refresh_estimation(estimation: Estimation, now: Optional[datetime] = None) -> Estimation:
    """Return ``estimation`` with subtotal, contingency, final cost, resource costs and progress recomputed.

    A contingency that is not a number in ``[0, 100]`` raises
    :class:`~projest.errors.ValidationError`.
    """

    contingency = validate_contingency(estimation.contingency_percent)
    totals = compute_totals(estimation.categories, contingency)
    resources = [
        replace(resource, total_cost=resource_cost(resource.quantity, resource.unit_cost, resource.total_cost))
        for resource in estimation.resources
    ]
    stamp = now or datetime.now()
    return replace(
        estimation,
        contingency_percent=contingency,
        subtotal=totals.subtotal,
        contingency_amount=totals.contingency_amount,
        final_cost=totals.final_cost,
        progress=compute_progress(estimation.phases),
        resources=resources,
        created_at=estimation.created_at or stamp,
        updated_at=stamp,
    )


class EstimatorService:
    """Ties the computational core to an injected persistence handle.

    Every call reads fresh snapshots from the store; nothing is cached between
    calls. Concurrent saves of the same estimation are last-writer-wins.
    """

    def __init__(self, store: JsonStore, config: Config) -> None:
        self.store = store
        self.config = config

    def save_estimation(self, estimation: Union[Estimation, Mapping[str, object]]) -> Estimation:
        record = Estimation.coerce(estimation)
        if record.owner_id is None and self.config.owner_id:
            record = replace(record, owner_id=self.config.owner_id)
        refreshed = refresh_estimation(record)
        saved = self.store.save("estimations", refreshed)
        logger.info(
            "Saved estimation %s (%s): final cost $%s, progress %s%%",
            saved.id,
            saved.project_name or "unnamed",
            f"{saved.final_cost:,.2f}",
            saved.progress,
        )
        return saved

    def dashboard(self, owner_id: Optional[str] = None) -> DashboardStats:
        owner = owner_id or self.config.owner_id
        return compute_dashboard_stats(
            self.store.fetch_all_by_owner("projects", owner),
            self.store.fetch_all_by_owner("estimations", owner),
        )

    def estimation_summary(self, owner_id: Optional[str] = None) -> EstimationSummary:
        owner = owner_id or self.config.owner_id
        return compute_estimation_summary(self.store.fetch_all_by_owner("estimations", owner))

    def build_report(
        self,
        report_type: str,
        owner_id: Optional[str] = None,
        date_range: Union[DateRange, str, None] = None,
        now: Optional[datetime] = None,
    ) -> ReportData:
        owner = owner_id or self.config.owner_id
        window = (
            date_range
            if isinstance(date_range, DateRange)
            else resolve_date_range(date_range or self.config.date_range, now=now)
        )
        projects = select_in_range(self.store.fetch_all_by_owner("projects", owner), window)
        estimations = select_in_range(self.store.fetch_all_by_owner("estimations", owner), window)
        # Team members and resources are not narrowed by date
        team_members = self.store.fetch_all_by_owner("team_members", owner)
        resources = self.store.fetch_all_by_owner("resources", owner)
        logger.info(
            "Building %s report for %s (%s): %d projects, %d estimations, %d team members, %d resources",
            report_type,
            owner or "all owners",
            window.label,
            len(projects),
            len(estimations),
            len(team_members),
            len(resources),
        )
        return compute_report(report_type, projects, estimations, team_members, window, resources=resources)

    def export_report(
        self,
        report_type: str,
        fmt: str = "txt",
        owner_id: Optional[str] = None,
        date_range: Union[DateRange, str, None] = None,
        output_dir: Optional[Path] = None,
        now: Optional[datetime] = None,
    ) -> RenderedReport:
        data = self.build_report(report_type, owner_id, date_range, now)
        rendered = render_report(
            data.report_type,
            data.date_range,
            data,
            fmt,
            generated_at=now,
            include_chart=self.config.include_charts,
        )
        if output_dir is not None:
            target = Path(output_dir)
            target.mkdir(parents=True, exist_ok=True)
            path = target / rendered.filename
            path.write_bytes(rendered.content)
            logger.info("Wrote %s", path)
        return rendered


__all__ = ["EstimatorService", "refresh_estimation"]
