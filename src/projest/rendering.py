"""
Report exports: plain text, CSV, single-sheet workbook and PDF.

Text and PDF share one line layout (:func:`report_lines`); CSV and the workbook
share one table layout (:func:`report_tables`).

Known limitations:

* CSV cells are written unquoted, so names containing commas split columns.
* PDF output is a single page with fixed margins; long reports run off the
  bottom of the page instead of paginating.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, List, Optional, Sequence, Tuple, Union

import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from . import charts
from .errors import RenderError
from .reporting import (
    DateRange,
    FinancialReport,
    MonthlySeries,
    OverviewReport,
    ProjectsReport,
    ReportData,
    ResourcesReport,
    RoleShare,
)

logger = logging.getLogger(__name__)

REPORT_TITLE = "Project Estimation Report"

CONTENT_TYPES = {
    "txt": "text/plain",
    "csv": "text/csv",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}
EXTENSIONS = {"txt": "txt", "csv": "csv", "excel": "xlsx", "pdf": "pdf"}
_FORMAT_ALIASES = {"text": "txt", "xlsx": "excel", "spreadsheet": "excel"}

PDF_MARGIN = 20 * mm
# style -> (font, size, advance after the line in mm)
PDF_STYLES = {
    "title": ("Helvetica-Bold", 20, 15),
    "meta": ("Helvetica", 12, 10),
    "rule": ("Helvetica", 12, 5),
    "section": ("Helvetica-Bold", 16, 15),
    "subsection": ("Helvetica-Bold", 14, 10),
    "body": ("Helvetica", 12, 10),
    "item": ("Helvetica", 10, 8),
    "detail": ("Helvetica", 10, 6),
    "note": ("Helvetica-Oblique", 9, 8),
    "blank": ("Helvetica", 10, 5),
}


@dataclass(frozen=True)
class RenderedReport:
    content: bytes
    content_type: str
    filename: str
    format: str

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


@dataclass(frozen=True)
class Table:
    title: str
    header: Tuple[str, ...]
    rows: Tuple[Tuple[object, ...], ...]
    money_columns: FrozenSet[int] = field(default_factory=frozenset)
    percent_columns: FrozenSet[int] = field(default_factory=frozenset)


Line = Tuple[str, str]


def normalize_format(fmt: Optional[str]) -> str:
    key = (fmt or "txt").strip().lower()
    key = _FORMAT_ALIASES.get(key, key)
    if key not in CONTENT_TYPES:
        logger.info("Unknown export format %r; rendering plain text", fmt)
        return "txt"
    return key


def _range_label(date_range: Union[DateRange, str, None]) -> str:
    if isinstance(date_range, DateRange):
        if date_range.label == "custom":
            return f"{date_range.start:%Y-%m-%d} to {date_range.end:%Y-%m-%d}"
        return date_range.label
    return str(date_range or "")


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _plain_money(value: float) -> str:
    return f"${value:.2f}"


def _number(value: float) -> str:
    return f"{value:,.0f}" if float(value).is_integer() else f"{value:,.1f}"


def report_filename(report_type: str, fmt: str, generated_at: Optional[datetime] = None) -> str:
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d")
    return f"report-{report_type}-{stamp}.{EXTENSIONS[fmt]}"


# ---------------------------------------------------------------------------
# Line layout (text, PDF)
# ---------------------------------------------------------------------------


def _header_lines(report_type: str, date_range: Union[DateRange, str, None], generated_at: datetime) -> List[Line]:
    return [
        ("title", REPORT_TITLE),
        ("meta", f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}"),
        ("meta", f"Report Type: {report_type}"),
        ("meta", f"Date Range: {_range_label(date_range)}"),
        ("rule", "=" * 37),
        ("blank", ""),
    ]


def _series_lines(title: str, series: MonthlySeries) -> List[Line]:
    lines: List[Line] = [("subsection", title)]
    for bucket in series.buckets:
        lines.append(("item", f"{bucket.period}: {_money(bucket.amount)} ({bucket.count} projects)"))
    if series.years_collide:
        years = ", ".join(str(year) for year in series.merged_years)
        lines.append(("note", f"Note: months combine estimations from {years}"))
    return lines


def _allocation_lines(shares: Sequence[RoleShare]) -> List[Line]:
    lines: List[Line] = [("subsection", "RESOURCE ALLOCATION")]
    for share in shares:
        lines.append(("item", f"{share.name}: {share.value}% ({share.count} members)"))
    return lines


def report_lines(
    report_type: str,
    date_range: Union[DateRange, str, None],
    data: ReportData,
    generated_at: Optional[datetime] = None,
) -> List[Line]:
    """Styled lines for the text and PDF layouts."""

    lines = _header_lines(report_type, date_range, generated_at or datetime.now())

    if isinstance(data, OverviewReport):
        lines += [
            ("section", "OVERVIEW REPORT"),
            ("body", f"Total Revenue: {_money(data.total_revenue)}"),
            ("body", f"Active Projects: {data.active_projects}"),
            ("body", f"Team Members: {data.team_members}"),
            ("body", f"Avg Project Value: {_money(round(data.avg_project_value))}"),
            ("blank", ""),
        ]
        lines += _series_lines("PROJECT COSTS OVER TIME", data.project_costs_over_time)
        if data.resource_allocation:
            lines.append(("blank", ""))
            lines += _allocation_lines(data.resource_allocation)
    elif isinstance(data, FinancialReport):
        lines += [
            ("section", "FINANCIAL REPORT"),
            ("body", f"Total Revenue: {_money(data.total_revenue)}"),
            ("body", f"Total Costs: {_money(data.total_costs)}"),
            ("body", f"Net Profit: {_money(data.net_profit)}"),
            ("body", f"Profit Margin: {data.profit_margin}%"),
            ("blank", ""),
        ]
        lines += _series_lines("REVENUE BREAKDOWN", data.revenue_breakdown)
        if data.project_profitability:
            lines += [("blank", ""), ("subsection", "PROJECT PROFITABILITY")]
            for row in data.project_profitability:
                lines += [
                    ("detail", f"{row.project_name}:"),
                    ("detail", f"  Revenue: {_money(row.revenue)}"),
                    ("detail", f"  Cost: {_money(row.cost)}"),
                    ("detail", f"  Profit: {_money(row.profit)}"),
                    ("detail", f"  Margin: {row.margin}%"),
                    ("blank", ""),
                ]
    elif isinstance(data, ResourcesReport):
        lines.append(("section", "RESOURCES REPORT"))
        if data.team_performance:
            lines.append(("subsection", "TEAM PERFORMANCE"))
            for member in data.team_performance:
                lines += [
                    ("detail", f"{member.name} ({member.role}):"),
                    ("detail", f"  Projects: {member.projects}"),
                    ("detail", f"  Hours: {_number(member.hours)}"),
                    ("detail", f"  Labor Cost: {_money(member.cost)}"),
                    ("blank", ""),
                ]
        if data.resource_usage:
            lines += [
                ("subsection", "RESOURCE UTILIZATION"),
                ("body", f"Average Utilization: {_number(data.average_utilization)}%"),
                ("body", f"Allocated Cost: {_money(data.total_allocated_cost)}"),
            ]
            for usage in data.resource_usage:
                state = "available" if usage.available else "unavailable"
                lines.append(
                    (
                        "item",
                        f"{usage.name} ({usage.kind}): {_number(usage.utilization)}% allocated,"
                        f" {_money(usage.allocated_cost)}, {state}",
                    )
                )
            lines.append(("blank", ""))
        if data.resource_allocation:
            lines += _allocation_lines(data.resource_allocation)
    elif isinstance(data, ProjectsReport):
        lines += [("section", "PROJECTS REPORT"), ("subsection", "PROJECT STATUS OVERVIEW")]
        for share in data.project_status:
            lines.append(("item", f"{share.status}: {share.count} ({share.percentage}%)"))
        if data.recent_projects:
            lines += [("blank", ""), ("subsection", "RECENT PROJECTS")]
            for project in data.recent_projects:
                lines += [
                    ("detail", f"{project.name}:"),
                    ("detail", f"  Status: {project.status}"),
                    ("detail", f"  Budget: {_money(project.budget)}"),
                    ("detail", f"  Actual: {_money(project.actual)}"),
                    ("blank", ""),
                ]
    else:
        raise RenderError(f"Unsupported report data: {type(data).__name__}")
    return lines


def render_text(
    report_type: str,
    date_range: Union[DateRange, str, None],
    data: ReportData,
    generated_at: Optional[datetime] = None,
) -> str:
    out: List[str] = []
    for style, text in report_lines(report_type, date_range, data, generated_at):
        out.append(text)
        if style in {"section", "subsection"}:
            out.append("-" * len(text))
    return "\n".join(out) + "\n"


# ---------------------------------------------------------------------------
# Table layout (CSV, workbook)
# ---------------------------------------------------------------------------


def _series_table(title: str, series: MonthlySeries) -> Table:
    return Table(
        title=title,
        header=("Period", "Amount", "Project Count"),
        rows=tuple((b.period, b.amount, b.count) for b in series.buckets),
        money_columns=frozenset({1}),
    )


def _allocation_table(shares: Sequence[RoleShare]) -> Table:
    return Table(
        title="Resource Allocation",
        header=("Role Group", "Members", "Share"),
        rows=tuple((s.name, s.count, s.value) for s in shares),
        percent_columns=frozenset({2}),
    )


def report_tables(data: ReportData) -> List[Table]:
    """Logical tables for the CSV and workbook layouts, one per report section."""

    if isinstance(data, OverviewReport):
        return [
            Table(
                title="Summary",
                header=("Metric", "Value"),
                rows=(
                    ("Total Revenue", data.total_revenue),
                    ("Active Projects", data.active_projects),
                    ("Team Members", data.team_members),
                    ("Avg Project Value", round(data.avg_project_value)),
                ),
            ),
            _series_table("Project Costs Over Time", data.project_costs_over_time),
            _allocation_table(data.resource_allocation),
        ]
    if isinstance(data, FinancialReport):
        return [
            Table(
                title="Summary",
                header=("Metric", "Value"),
                rows=(
                    ("Total Revenue", data.total_revenue),
                    ("Total Costs", data.total_costs),
                    ("Net Profit", data.net_profit),
                    ("Profit Margin", f"{data.profit_margin}%"),
                ),
            ),
            _series_table("Revenue Breakdown", data.revenue_breakdown),
            Table(
                title="Project Profitability",
                header=("Project", "Revenue", "Cost", "Profit", "Margin"),
                rows=tuple((r.project_name, r.revenue, r.cost, r.profit, r.margin) for r in data.project_profitability),
                money_columns=frozenset({1, 2, 3}),
                percent_columns=frozenset({4}),
            ),
        ]
    if isinstance(data, ResourcesReport):
        return [
            Table(
                title="Team Performance",
                header=("Name", "Role", "Projects", "Hours", "Labor Cost"),
                rows=tuple((m.name, m.role, m.projects, m.hours, m.cost) for m in data.team_performance),
                money_columns=frozenset({4}),
            ),
            _allocation_table(data.resource_allocation),
            Table(
                title="Resource Utilization",
                header=("Name", "Kind", "Utilization", "Allocated Cost", "Available"),
                rows=tuple(
                    (u.name, u.kind, _number(u.utilization), u.allocated_cost, "yes" if u.available else "no")
                    for u in data.resource_usage
                ),
                money_columns=frozenset({3}),
                percent_columns=frozenset({2}),
            ),
        ]
    if isinstance(data, ProjectsReport):
        return [
            Table(
                title="Project Status",
                header=("Status", "Count", "Percentage"),
                rows=tuple((s.status, s.count, s.percentage) for s in data.project_status),
                percent_columns=frozenset({2}),
            ),
            Table(
                title="Recent Projects",
                header=("Name", "Status", "Budget", "Actual"),
                rows=tuple((p.name, p.status, p.budget, p.actual) for p in data.recent_projects),
                money_columns=frozenset({2, 3}),
            ),
        ]
    raise RenderError(f"Unsupported report data: {type(data).__name__}")


def _table_rows(
    report_type: str,
    date_range: Union[DateRange, str, None],
    data: ReportData,
    generated_at: datetime,
    *,
    text_cells: bool,
) -> List[List[object]]:
    rows: List[List[object]] = [
        [f"{report_type.capitalize()} Report"],
        ["Generated", f"{generated_at:%Y-%m-%d %H:%M:%S}"],
        ["Report Type", report_type],
        ["Date Range", _range_label(date_range)],
    ]
    for table in report_tables(data):
        rows += [[], [table.title], list(table.header)]
        for raw in table.rows:
            cells: List[object] = []
            for index, value in enumerate(raw):
                if index in table.percent_columns:
                    cells.append(f"{value}%")
                elif index in table.money_columns and text_cells:
                    cells.append(_plain_money(float(value)))  # type: ignore[arg-type]
                else:
                    cells.append(value)
            rows.append(cells)
    return rows


def render_csv(
    report_type: str,
    date_range: Union[DateRange, str, None],
    data: ReportData,
    generated_at: Optional[datetime] = None,
) -> str:
    rows = _table_rows(report_type, date_range, data, generated_at or datetime.now(), text_cells=True)
    # Cells are joined without quoting; values are assumed to be comma-free.
    return "\n".join(",".join("" if cell is None else str(cell) for cell in row) for row in rows) + "\n"


def render_spreadsheet(
    report_type: str,
    date_range: Union[DateRange, str, None],
    data: ReportData,
    generated_at: Optional[datetime] = None,
) -> bytes:
    rows = _table_rows(report_type, date_range, data, generated_at or datetime.now(), text_cells=False)
    width = max(len(row) for row in rows)
    frame = pd.DataFrame([row + [None] * (width - len(row)) for row in rows])
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name="Report", index=False, header=False)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


def _chart_for(data: ReportData) -> Optional[bytes]:
    if isinstance(data, OverviewReport):
        return charts.monthly_bar_chart(data.project_costs_over_time, "Project Costs Over Time")
    if isinstance(data, FinancialReport):
        return charts.monthly_bar_chart(data.revenue_breakdown, "Revenue Breakdown")
    return None


def render_pdf(
    report_type: str,
    date_range: Union[DateRange, str, None],
    data: ReportData,
    generated_at: Optional[datetime] = None,
    *,
    include_chart: bool = True,
) -> bytes:
    """Lay the report out on one A4 page with 20 mm margins; overflow is not paginated."""

    lines = report_lines(report_type, date_range, data, generated_at)
    buffer = io.BytesIO()
    page_width, page_height = A4
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"{REPORT_TITLE} ({report_type})")
    y = page_height - PDF_MARGIN
    for style, text in lines:
        font, size, advance = PDF_STYLES.get(style, PDF_STYLES["body"])
        if text:
            c.setFont(font, size)
            indent = 5 * mm if style in {"item", "detail"} and text.startswith("  ") else 0
            c.drawString(PDF_MARGIN + indent, y, text.strip() if indent else text)
        y -= advance * mm
    if y < PDF_MARGIN:
        logger.debug("PDF content overflows the page by %.0f pt", PDF_MARGIN - y)

    if include_chart:
        image_bytes = _chart_for(data)
        if image_bytes is not None:
            image = ImageReader(io.BytesIO(image_bytes))
            img_width, img_height = image.getSize()
            draw_width = page_width - 2 * PDF_MARGIN
            draw_height = img_height * draw_width / img_width
            if y - draw_height >= PDF_MARGIN:
                c.drawImage(image, PDF_MARGIN, y - draw_height, width=draw_width, height=draw_height, mask="auto")
            else:
                logger.debug("Skipping chart; %.0f pt left on the page", y - PDF_MARGIN)
    c.showPage()
    c.save()
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def render_report(
    report_type: str,
    date_range: Union[DateRange, str, None],
    data: ReportData,
    fmt: Optional[str] = "txt",
    generated_at: Optional[datetime] = None,
    *,
    include_chart: bool = True,
) -> RenderedReport:
    """
    Export ``data`` in ``fmt`` (``txt``, ``csv``, ``excel`` or ``pdf``).

    The header and filename always name the type of ``data``; a differing
    ``report_type`` is logged and ignored. A failure while building the
    workbook is logged and answered with the CSV export instead of an error.
    """

    if data is None:
        raise RenderError("No report data to render")
    kind = getattr(data, "report_type", None)
    if kind is None:
        raise RenderError(f"Unsupported report data: {type(data).__name__}")
    requested = (report_type or kind).strip().lower()
    if requested != kind:
        logger.warning("Report type %r does not match %s data; labelling the export %s", report_type, kind, kind)
    fmt_key = normalize_format(fmt)
    generated = generated_at or datetime.now()

    if fmt_key == "excel":
        try:
            content = render_spreadsheet(kind, date_range, data, generated)
        except Exception:
            logger.exception("Spreadsheet generation failed for %s report; falling back to CSV", kind)
            fmt_key = "csv"
            content = render_csv(kind, date_range, data, generated).encode("utf-8")
    elif fmt_key == "csv":
        content = render_csv(kind, date_range, data, generated).encode("utf-8")
    elif fmt_key == "pdf":
        content = render_pdf(kind, date_range, data, generated, include_chart=include_chart)
    else:
        content = render_text(kind, date_range, data, generated).encode("utf-8")

    logger.debug("rendered %s report as %s (%d bytes)", kind, fmt_key, len(content))
    return RenderedReport(
        content=content,
        content_type=CONTENT_TYPES[fmt_key],
        filename=report_filename(kind, fmt_key, generated),
        format=fmt_key,
    )


__all__ = [
    "CONTENT_TYPES",
    "RenderedReport",
    "Table",
    "normalize_format",
    "report_filename",
    "report_lines",
    "report_tables",
    "render_text",
    "render_csv",
    "render_spreadsheet",
    "render_pdf",
    "render_report",
]
