from __future__ import annotations

from datetime import datetime
from typing import List

import pytest

from projest.models import (
    CostCategory,
    Estimation,
    LaborItem,
    MaterialItem,
    OverheadItem,
    Phase,
    Project,
    TeamMember,
)
from projest.store import JsonStore


@pytest.fixture
def categories() -> List[CostCategory]:
    return [
        CostCategory("Labor", (LaborItem("Alice", hours=10, rate=50), LaborItem("Bob", hours=20, rate=40))),
        CostCategory("Materials", (MaterialItem("Servers", quantity=2, unit_cost=300),)),
        CostCategory("Overhead", (OverheadItem("Office", months=3, monthly_cost=100),)),
    ]


@pytest.fixture
def projects() -> List[Project]:
    return [
        Project(id="p1", owner_id="u1", name="Portal", status="completed", estimated_budget=5000, team=("m1", "m2"), created_at=datetime(2024, 1, 10)),
        Project(id="p2", owner_id="u1", name="Mobile", status="in_progress", estimated_budget=8000, team=("m1",), created_at=datetime(2024, 2, 3)),
        Project(id="p3", owner_id="u1", name="Audit", status="planning", estimated_budget=1200, created_at=datetime(2024, 3, 15)),
        Project(id="p4", owner_id="u1", name="Legacy", status="on_hold", estimated_budget=900, created_at=datetime(2024, 3, 20)),
    ]


@pytest.fixture
def estimations() -> List[Estimation]:
    return [
        Estimation(id="e1", owner_id="u1", project_id="p1", project_name="Portal", subtotal=800, final_cost=1000, status="completed", created_at=datetime(2024, 1, 12)),
        Estimation(id="e2", owner_id="u1", project_id="p2", project_name="Mobile", subtotal=1500, final_cost=1650, status="draft", created_at=datetime(2024, 1, 28)),
        Estimation(id="e3", owner_id="u1", project_id="p3", project_name="Audit", subtotal=0, final_cost=0, status="in_progress", created_at=datetime(2024, 3, 2)),
    ]


@pytest.fixture
def team_members() -> List[TeamMember]:
    return [
        TeamMember(id="m1", owner_id="u1", name="Alice", role="developer", hourly_rate=50),
        TeamMember(id="m2", owner_id="u1", name="Bob", role="designer", hourly_rate=40),
        TeamMember(id="m3", owner_id="u1", name="Cara", role="manager", hourly_rate=70, availability="busy"),
        TeamMember(id="m4", owner_id="u1", name="Dev", role="analyst", hourly_rate=45),
    ]


@pytest.fixture
def phases() -> List[Phase]:
    return [
        Phase("Discovery", status="completed", duration_weeks=2),
        Phase("Build", status="planned", duration_weeks=6, dependencies=("Discovery",)),
        Phase("Launch", status="completed", duration_weeks=1, dependencies=("Build",)),
    ]


@pytest.fixture
def store(tmp_path) -> JsonStore:
    return JsonStore(tmp_path / "store.json")
