"""Resource utilization and allocated-cost math."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Sequence, Union

from .models import Allocation, Resource, TeamMember
from .numeric import to_number

HOURS_PER_WEEK = 40.0
DEFAULT_WEEKS = 4.0

Assignable = Union[Resource, TeamMember]


def resource_utilization(resource_id: str, allocations: Iterable[Allocation]) -> float:
    """Sum of allocation percentages assigned to ``resource_id`` (may exceed 100)."""

    return float(
        sum(to_number(alloc.allocation_percent) for alloc in allocations if alloc.resource_id == resource_id)
    )


def average_utilization(resource_ids: Sequence[str], allocations: Sequence[Allocation]) -> float:
    """Mean utilization across ``resource_ids`` with each resource capped at 100%."""

    if not resource_ids:
        return 0.0
    capped = [min(resource_utilization(rid, allocations), 100.0) for rid in resource_ids]
    return sum(capped) / len(resource_ids)


def _rate(entity: Assignable) -> float:
    # Team members bill by the hour; other resources carry a unit cost
    if isinstance(entity, TeamMember):
        return to_number(entity.hourly_rate)
    return to_number(entity.unit_cost)


def allocated_cost(allocations: Iterable[Allocation], assignables: Mapping[str, Assignable]) -> float:
    """Cost of all allocations: weeks x 40h x allocation share x rate.

    Allocations naming an unknown resource contribute nothing.
    """

    total = 0.0
    for alloc in allocations:
        entity = assignables.get(alloc.resource_id)
        if entity is None:
            continue
        weeks = to_number(alloc.weeks) or DEFAULT_WEEKS
        hours = weeks * HOURS_PER_WEEK * to_number(alloc.allocation_percent) / 100
        total += hours * _rate(entity)
    return total


def is_available(entity: Assignable) -> bool:
    if isinstance(entity, TeamMember):
        return entity.availability == "available"
    return bool(entity.available)


def available_resources(entities: Iterable[Assignable], allocations: Sequence[Allocation]) -> List[Assignable]:
    """Entities marked available whose current utilization is below 100%."""

    return [
        entity
        for entity in entities
        if is_available(entity) and resource_utilization(entity.id or "", allocations) < 100
    ]


__all__ = [
    "HOURS_PER_WEEK",
    "DEFAULT_WEEKS",
    "resource_utilization",
    "average_utilization",
    "allocated_cost",
    "is_available",
    "available_resources",
]
