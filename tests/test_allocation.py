from __future__ import annotations

import pytest

from projest.allocation import (
    allocated_cost,
    available_resources,
    average_utilization,
    resource_utilization,
)
from projest.models import Allocation, Resource, TeamMember


@pytest.fixture
def allocations():
    return [
        Allocation("m1", allocation_percent=60, project_id="p1"),
        Allocation("m1", allocation_percent=50, project_id="p2"),
        Allocation("r1", allocation_percent=25, weeks=2),
    ]


def test_utilization_sums_allocations_per_resource(allocations):
    assert resource_utilization("m1", allocations) == 110
    assert resource_utilization("r1", allocations) == 25
    assert resource_utilization("nobody", allocations) == 0


def test_average_utilization_caps_each_resource(allocations):
    assert average_utilization(["m1", "r1"], allocations) == pytest.approx((100 + 25) / 2)
    assert average_utilization([], allocations) == 0


def test_allocated_cost_uses_hourly_rate_or_unit_cost(allocations):
    assignables = {
        "m1": TeamMember(id="m1", name="Alice", hourly_rate=50),
        "r1": Resource(id="r1", name="Rig", unit_cost=10),
    }

    # m1: 4 weeks x 40h x (0.6 + 0.5) x 50, r1: 2 weeks x 40h x 0.25 x 10
    assert allocated_cost(allocations, assignables) == pytest.approx(8800 + 200)


def test_allocated_cost_skips_unknown_resources():
    assert allocated_cost([Allocation("ghost", 100)], {}) == 0


def test_zero_weeks_falls_back_to_default_period():
    member = TeamMember(id="m1", hourly_rate=10)

    assert allocated_cost([Allocation("m1", 100, weeks=0)], {"m1": member}) == 4 * 40 * 10


def test_available_resources_excludes_busy_and_fully_allocated(team_members, allocations):
    rig = Resource(id="r1", name="Rig")
    spare = Resource(id="r2", name="Spare", available=False)
    full = allocations + [Allocation("m4", allocation_percent=100)]

    names = [entity.name for entity in available_resources(team_members + [rig, spare], full)]

    assert names == ["Bob", "Rig"]
