import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .config import Config
from .config import load_config as load_runtime_config
from .errors import ProjestError
from .models import EstimationResource, Phase, categories_from_rows, to_datetime
from .pricing import category_breakdown, compute_totals, resource_cost
from .rendering import CONTENT_TYPES
from .reporting import DATE_RANGE_CHOICES, REPORT_TYPES
from .service import EstimatorService
from .store import JsonStore
from .timeline import compute_progress, critical_path, format_duration, phase_schedule, total_duration

logger = logging.getLogger(__name__)


def _read_estimate_file(path: Path) -> dict:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ProjestError(f"Unable to read estimate file {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ProjestError(f"Estimate file {path} must hold a JSON object")
    return payload


def run_totals(cfg: Config, estimate_path: Path, contingency: Optional[float] = None) -> int:
    payload = _read_estimate_file(estimate_path)
    categories = categories_from_rows(payload.get("categories") or payload.get("costBreakdown") or [])
    timeline = payload.get("timeline") or {}
    phases = [Phase.coerce(p) for p in payload.get("phases") or timeline.get("phases") or []]
    resources = [EstimationResource.coerce(r) for r in payload.get("resources") or []]
    start_date = to_datetime(payload.get("startDate") or timeline.get("startDate"))
    if contingency is None:
        contingency = payload.get("contingency", cfg.default_contingency)
    totals = compute_totals(categories, contingency)

    logger.info("Cost breakdown for %s", estimate_path.name)
    for share in category_breakdown(categories):
        logger.info(" - %-12s $%s (%.1f%%)", share.name, f"{share.total:,.2f}", share.share_pct)
    logger.info("Subtotal:    $%s", f"{totals.subtotal:,.2f}")
    logger.info("Contingency: $%s (%s%%)", f"{totals.contingency_amount:,.2f}", contingency)
    logger.info("Final cost:  $%s", f"{totals.final_cost:,.2f}")
    if resources:
        resources_total = sum(resource_cost(r.quantity, r.unit_cost, r.total_cost) for r in resources)
        logger.info("Resources:   $%s across %d lines", f"{resources_total:,.2f}", len(resources))
    if phases:
        logger.info("Progress:    %s%%", compute_progress(phases))
        logger.info("Duration:    %s", format_duration(total_duration(phases)))
        path = critical_path(phases)
        if path:
            logger.info("Critical path: %s", " -> ".join(path))
        if start_date is not None:
            logger.info("Schedule:")
            for window in phase_schedule(phases, start_date):
                logger.info(" - %-12s %s to %s", window.name, window.start, window.end)
    return 0


def run_dashboard(cfg: Config) -> int:
    service = EstimatorService(JsonStore(cfg.store_path), cfg)
    stats = service.dashboard()
    logger.info("Dashboard for %s", cfg.owner_id or "all owners")
    logger.info(" - Projects: %s (%s active, %s completed)", stats.total_projects, stats.active_projects, stats.completed_projects)
    logger.info(
        " - Estimations: %s (%s active, %s completed)",
        stats.total_estimations,
        stats.active_estimations,
        stats.completed_estimations,
    )
    logger.info(" - Total value: $%s", f"{stats.total_value:,.2f}")
    summary = service.estimation_summary()
    logger.info(" - Draft estimations: %s", summary.draft_estimations)
    logger.info(" - Average estimation: $%s", f"{summary.avg_estimation_value:,.2f}")
    return 0


def run_report(cfg: Config, report_type: str, fmt: str) -> int:
    service = EstimatorService(JsonStore(cfg.store_path), cfg)
    rendered = service.export_report(report_type, fmt, date_range=cfg.date_range, output_dir=cfg.output_dir)
    if rendered.format != fmt:
        logger.warning("Requested %s export; wrote %s instead", fmt, rendered.format)
    logger.info("Report written: %s", cfg.output_dir / rendered.filename)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Project cost estimation totals, dashboard and report exports")
    parser.add_argument("--store", help="Path to the JSON record store")
    parser.add_argument("--output-dir", help="Directory for exported reports")
    parser.add_argument("--owner", help="Owner id whose records are read")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    sub = parser.add_subparsers(dest="command", required=True)

    totals = sub.add_parser("totals", help="Compute totals for an estimate JSON file")
    totals.add_argument("estimate", help="JSON file with categories, contingency and phases")
    totals.add_argument("--contingency", type=float, help="Override the contingency percentage")

    sub.add_parser("dashboard", help="Summarize projects and estimations")

    report = sub.add_parser("report", help="Export a report")
    report.add_argument("--type", dest="report_type", choices=REPORT_TYPES, default="overview")
    report.add_argument("--range", choices=DATE_RANGE_CHOICES[:-1], help="Date range (default from PROJEST_DATE_RANGE)")
    report.add_argument("--format", dest="fmt", choices=sorted(CONTENT_TYPES), default="txt")
    report.add_argument("--no-charts", action="store_true", help="Leave charts out of PDF exports")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(Path.cwd() / ".env")
    args = parse_args(argv)
    try:
        runtime_cfg = load_runtime_config(os.environ, args)
    except ProjestError as exc:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
        logger.error("Invalid configuration: %s", exc)
        return 1
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        if args.command == "totals":
            return run_totals(runtime_cfg, Path(args.estimate), args.contingency)
        if args.command == "dashboard":
            return run_dashboard(runtime_cfg)
        return run_report(runtime_cfg, args.report_type, args.fmt)
    except ProjestError as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # pragma: no cover
        logger.exception("Fatal error while running %s", args.command)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
