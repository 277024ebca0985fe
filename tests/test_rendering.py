from __future__ import annotations

import io
from datetime import datetime

import pandas as pd
import pytest

from projest import rendering
from projest.errors import RenderError
from projest.reporting import DateRange, compute_report
from projest.rendering import normalize_format, render_report

GENERATED = datetime(2024, 4, 2, 9, 15, 0)


@pytest.fixture
def financial(projects, estimations):
    window = DateRange("custom", datetime(2024, 1, 1), datetime(2024, 3, 31))
    return compute_report("financial", projects, estimations, date_range=window)


def test_text_report_has_header_and_sections(financial):
    rendered = render_report("financial", financial.date_range, financial, "txt", GENERATED)

    assert rendered.content_type == "text/plain"
    assert rendered.filename == "report-financial-2024-04-02.txt"
    lines = rendered.text.splitlines()
    assert lines[:5] == [
        "Project Estimation Report",
        "Generated: 2024-04-02 09:15:00",
        "Report Type: financial",
        "Date Range: 2024-01-01 to 2024-03-31",
        "=" * 37,
    ]
    assert "FINANCIAL REPORT" in lines
    assert lines[lines.index("FINANCIAL REPORT") + 1] == "-" * len("FINANCIAL REPORT")
    assert "Net Profit: $350.00" in lines
    assert "Profit Margin: 13%" in lines
    assert "  Margin: 9%" in lines


def test_projects_text_lists_status_overview(projects, estimations):
    data = compute_report("projects", projects, estimations)

    text = render_report("projects", "30days", data, "text", GENERATED).text

    assert "Date Range: 30days" in text
    assert "In Progress: 1 (33%)" in text
    assert "RECENT PROJECTS" in text


def test_csv_report_rows(financial):
    rendered = render_report("financial", financial.date_range, financial, "csv", GENERATED)

    assert rendered.content_type == "text/csv"
    assert rendered.filename.endswith(".csv")
    lines = rendered.text.splitlines()
    assert lines[0] == "Financial Report"
    assert "Generated,2024-04-02 09:15:00" in lines
    assert "Project,Revenue,Cost,Profit,Margin" in lines
    assert "Portal,$1000.00,$800.00,$200.00,20%" in lines
    assert "Jan,$2650.00,2" in lines


def test_spreadsheet_report_reads_back(financial):
    rendered = render_report("financial", financial.date_range, financial, "excel", GENERATED)

    assert rendered.format == "excel"
    assert rendered.filename == "report-financial-2024-04-02.xlsx"
    frame = pd.read_excel(io.BytesIO(rendered.content), header=None, engine="openpyxl")
    assert frame.iloc[0, 0] == "Financial Report"
    portal = frame[frame[0] == "Portal"].iloc[0]
    assert portal.iloc[1:4].tolist() == [1000, 800, 200]
    assert portal.iloc[4] == "20%"


def test_spreadsheet_failure_falls_back_to_csv(financial, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("no workbook engine")

    monkeypatch.setattr(rendering, "render_spreadsheet", broken)

    rendered = render_report("financial", financial.date_range, financial, "excel", GENERATED)

    assert rendered.format == "csv"
    assert rendered.content_type == "text/csv"
    assert rendered.filename == "report-financial-2024-04-02.csv"
    assert rendered.text.startswith("Financial Report\n")


def test_pdf_report_text(financial):
    pypdf = pytest.importorskip("pypdf")

    rendered = render_report("financial", financial.date_range, financial, "pdf", GENERATED, include_chart=False)

    assert rendered.content_type == "application/pdf"
    assert rendered.content.startswith(b"%PDF")
    reader = pypdf.PdfReader(io.BytesIO(rendered.content))
    assert len(reader.pages) == 1
    text = reader.pages[0].extract_text()
    assert "Project Estimation Report" in text
    assert "FINANCIAL REPORT" in text


def test_pdf_report_with_chart(projects, estimations):
    pytest.importorskip("matplotlib")
    data = compute_report("overview", projects, estimations)

    rendered = render_report("overview", "90days", data, "pdf", GENERATED)

    assert rendered.content.startswith(b"%PDF")
    assert b"/Image" in rendered.content


def test_unknown_format_renders_text(financial):
    rendered = render_report("financial", None, financial, "docx", GENERATED)

    assert rendered.format == "txt"
    assert rendered.filename.endswith(".txt")


def test_format_aliases():
    assert normalize_format("XLSX") == "excel"
    assert normalize_format(None) == "txt"


def test_missing_data_is_an_error():
    with pytest.raises(RenderError):
        render_report("overview", None, None, "txt")


@pytest.fixture
def resources_data(projects, team_members):
    estimations = [{"allocations": [{"resourceId": "m1", "allocationPercentage": 120}, {"resourceId": "r1", "allocationPercentage": 50}]}]
    resources = [{"id": "r1", "name": "Rig", "kind": "equipment", "unitCost": 10}]
    return compute_report("resources", projects, estimations, team_members, resources=resources)


def test_resources_text_lists_utilization(resources_data):
    text = render_report("resources", "30days", resources_data, "txt", GENERATED).text

    assert "RESOURCE UTILIZATION" in text
    assert "Alice (developer): 120% allocated, $9,600.00, unavailable" in text
    assert "Rig (equipment): 50% allocated, $800.00, available" in text
    assert "Allocated Cost: $10,400.00" in text


def test_resources_csv_has_utilization_table(resources_data):
    lines = render_report("resources", "30days", resources_data, "csv", GENERATED).text.splitlines()

    assert "Name,Kind,Utilization,Allocated Cost,Available" in lines
    assert "Alice,developer,120%,$9600.00,no" in lines
    assert "Bob,designer,0%,$0.00,yes" in lines


def test_export_is_labelled_by_its_data(projects, estimations, caplog):
    overview = compute_report("overview", projects, estimations)

    rendered = render_report("financial", "30days", overview, "txt", GENERATED)

    assert rendered.filename == "report-overview-2024-04-02.txt"
    assert "Report Type: overview" in rendered.text
    assert "OVERVIEW REPORT" in rendered.text
    assert "does not match" in caplog.text


def test_unsupported_data_is_an_error():
    with pytest.raises(RenderError):
        render_report("overview", None, object(), "txt")
