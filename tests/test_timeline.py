from __future__ import annotations

from datetime import date, datetime

from projest.models import Phase
from projest.timeline import compute_progress, critical_path, format_duration, phase_schedule, total_duration


def test_two_of_three_completed_rounds_to_67():
    phases = [{"status": "completed"}, {"status": "planned"}, {"status": "completed"}]

    assert compute_progress(phases) == 67


def test_no_phases_is_zero():
    assert compute_progress([]) == 0


def test_all_completed_is_hundred():
    assert compute_progress([Phase("a", "completed"), Phase("b", "completed")]) == 100


def test_unknown_status_counts_as_not_completed():
    phases = [Phase("a", "completed"), Phase("b", "finished"), Phase("c", "???")]

    assert compute_progress(phases) == 33


def test_progress_rounds_half_up():
    phases = [Phase(str(i), "completed" if i == 0 else "planned") for i in range(8)]

    # 1 of 8 is 12.5%
    assert compute_progress(phases) == 13


def test_progress_stays_in_bounds():
    for done in range(0, 6):
        phases = [Phase(str(i), "completed" if i < done else "delayed") for i in range(5)]
        assert 0 <= compute_progress(phases) <= 100


def test_schedule_lays_phases_end_to_end(phases):
    windows = phase_schedule(phases, datetime(2024, 1, 1, 9, 30))

    assert [(w.name, w.start, w.end) for w in windows] == [
        ("Discovery", date(2024, 1, 1), date(2024, 1, 15)),
        ("Build", date(2024, 1, 15), date(2024, 2, 26)),
        ("Launch", date(2024, 2, 26), date(2024, 3, 4)),
    ]
    assert total_duration(phases) == 9


def test_schedule_without_start_date_has_no_dates(phases):
    assert all(w.start is None and w.end is None for w in phase_schedule(phases, None))


def test_critical_path_follows_dependencies(phases):
    assert critical_path(phases) == ["Discovery", "Build", "Launch"]


def test_critical_path_stops_on_cycle():
    phases = [
        Phase("A"),
        Phase("B", dependencies=("A", "C")),
        Phase("C", dependencies=("B",)),
        Phase("D", dependencies=("C",)),
    ]

    # C leads back to B, which is already on the path
    assert critical_path(phases) == ["A", "B", "C"]
    assert critical_path([Phase("X", dependencies=("Y",)), Phase("Y", dependencies=("X",))]) == []


def test_format_duration():
    assert format_duration(0.5) == "4 days"
    assert format_duration(1) == "1 week"
    assert format_duration(3) == "3 weeks"
