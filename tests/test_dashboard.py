from __future__ import annotations

from projest.dashboard import compute_dashboard_stats, compute_estimation_summary
from projest.models import DashboardStats, EstimationSummary


def test_empty_input_is_all_zero():
    assert compute_dashboard_stats([], []) == DashboardStats()


def test_counts_and_value(projects, estimations):
    stats = compute_dashboard_stats(projects, estimations)

    assert stats.total_projects == 4
    assert stats.total_estimations == 3
    assert stats.total_value == 2650
    assert stats.active_projects == 2
    assert stats.completed_projects == 1
    assert stats.active_estimations == 2
    assert stats.completed_estimations == 1


def test_active_and_completed_never_exceed_total(projects, estimations):
    stats = compute_dashboard_stats(projects, estimations)

    assert stats.active_projects + stats.completed_projects <= stats.total_projects
    assert stats.active_estimations + stats.completed_estimations <= stats.total_estimations


def test_repeated_calls_agree(projects, estimations):
    assert compute_dashboard_stats(projects, estimations) == compute_dashboard_stats(projects, estimations)


def test_accepts_raw_records():
    stats = compute_dashboard_stats(
        [{"name": "X", "status": "In_Progress"}],
        [{"finalCost": "1,000", "status": "approved"}, {"finalCost": None}],
    )

    assert stats.active_projects == 1
    assert stats.total_value == 1000
    # a missing status defaults to draft
    assert stats.active_estimations == 1


def test_estimation_summary(estimations):
    summary = compute_estimation_summary(estimations + [{"finalCost": 350, "status": "approved"}])

    assert summary.total_estimations == 4
    assert summary.total_value == 3000
    assert summary.draft_estimations == 1
    assert summary.completed_estimations == 1
    assert summary.avg_estimation_value == 750


def test_estimation_summary_of_nothing():
    assert compute_estimation_summary([]) == EstimationSummary()
