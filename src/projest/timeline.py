"""Timeline helpers: completion progress, phase scheduling and the dependency chain."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Mapping, Optional, Union

from .models import Phase
from .numeric import rounded_percentage

PhaseLike = Union[Phase, Mapping[str, object]]


@dataclass(frozen=True)
class PhaseWindow:
    name: str
    start: Optional[date]
    end: Optional[date]


def _phases(phases: Iterable[PhaseLike]) -> List[Phase]:
    return [Phase.coerce(phase) for phase in phases or ()]


def compute_progress(phases: Iterable[PhaseLike]) -> int:
    """
    Percent of phases whose status is ``completed``, rounded half up.

    Returns 0 when there are no phases. Status strings outside the known set
    are accepted and count as not completed.
    """

    resolved = _phases(phases)
    if not resolved:
        return 0
    completed = sum(1 for phase in resolved if phase.is_completed)
    return rounded_percentage(completed, len(resolved))


def total_duration(phases: Iterable[PhaseLike]) -> float:
    return float(sum(phase.duration_weeks for phase in _phases(phases)))


def _as_date(value: Union[date, datetime, None]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def phase_schedule(phases: Iterable[PhaseLike], start_date: Union[date, datetime, None]) -> List[PhaseWindow]:
    """Lay phases end to end from ``start_date``; each starts once all earlier phases have elapsed."""

    origin = _as_date(start_date)
    windows: List[PhaseWindow] = []
    elapsed_weeks = 0.0
    for phase in _phases(phases):
        if origin is None:
            windows.append(PhaseWindow(name=phase.name, start=None, end=None))
            continue
        start = origin + timedelta(days=elapsed_weeks * 7)
        end = start + timedelta(days=phase.duration_weeks * 7)
        windows.append(PhaseWindow(name=phase.name, start=start, end=end))
        elapsed_weeks += phase.duration_weeks
    return windows


def critical_path(phases: Iterable[PhaseLike]) -> List[str]:
    """
    Follow the dependency chain from the first phase with no dependencies.

    At each step the next phase is the first one listing the current phase as a
    dependency. A phase already on the path ends the walk, so cycles terminate.
    """

    resolved = _phases(phases)
    current = next((phase for phase in resolved if not phase.dependencies), None)
    path: List[str] = []
    while current is not None and current.name not in path:
        path.append(current.name)
        previous = current.name
        current = next((phase for phase in resolved if previous in phase.dependencies), None)
    return path


def format_duration(weeks: float) -> str:
    if weeks < 1:
        return f"{round(weeks * 7)} days"
    shown = int(weeks) if float(weeks).is_integer() else weeks
    return f"{shown} week{'' if weeks == 1 else 's'}"


__all__ = [
    "PhaseWindow",
    "compute_progress",
    "total_duration",
    "phase_schedule",
    "critical_path",
    "format_duration",
]
