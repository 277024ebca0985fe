from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .numeric import to_number

PHASE_STATUSES: Tuple[str, ...] = ("planned", "in_progress", "completed", "delayed")
PROJECT_STATUSES: Tuple[str, ...] = ("planning", "in_progress", "completed", "on_hold", "cancelled")
ESTIMATION_STATUSES: Tuple[str, ...] = ("draft", "in_progress", "completed", "approved", "rejected")
AVAILABILITY_CHOICES: Tuple[str, ...] = ("available", "busy", "unavailable")
RESOURCE_KINDS: Tuple[str, ...] = ("human", "equipment", "material", "other")


def _pick(raw: Mapping[str, object], *keys: str, default: object = None) -> object:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _text(value: object | None, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def _status(value: object | None, default: str) -> str:
    text = _text(value).lower()
    return text or default


def to_datetime(value: object | None) -> Optional[datetime]:
    """Parse ``value`` into a naive UTC :class:`datetime` (``None`` when unparseable)."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    stamp = pd.to_datetime(value, errors="coerce")
    if pd.isna(stamp):
        return None
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp.to_pydatetime()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Cost line items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LaborItem:
    """Hours of work billed at an hourly rate."""

    name: str = ""
    hours: float = 0.0
    rate: float = 0.0

    kind: ClassVar[str] = "labor"

    def total(self) -> float:
        return to_number(self.hours) * to_number(self.rate)

    def to_dict(self) -> Dict[str, object]:
        return {"type": self.kind, "name": self.name, "hours": self.hours, "rate": self.rate}


@dataclass(frozen=True)
class MaterialItem:
    """A counted quantity of material at a unit cost."""

    name: str = ""
    quantity: float = 0.0
    unit_cost: float = 0.0

    kind: ClassVar[str] = "material"

    def total(self) -> float:
        return to_number(self.quantity) * to_number(self.unit_cost)

    def to_dict(self) -> Dict[str, object]:
        return {"type": self.kind, "name": self.name, "quantity": self.quantity, "unit_cost": self.unit_cost}


@dataclass(frozen=True)
class OverheadItem:
    """A recurring monthly cost over a number of months."""

    name: str = ""
    months: float = 0.0
    monthly_cost: float = 0.0

    kind: ClassVar[str] = "overhead"

    def total(self) -> float:
        return to_number(self.months) * to_number(self.monthly_cost)

    def to_dict(self) -> Dict[str, object]:
        return {"type": self.kind, "name": self.name, "months": self.months, "monthly_cost": self.monthly_cost}


@dataclass(frozen=True)
class FixedItem:
    """A lump-sum amount, as stored on flat cost-breakdown rows."""

    name: str = ""
    amount: float = 0.0

    kind: ClassVar[str] = "fixed"

    def total(self) -> float:
        return to_number(self.amount)

    def to_dict(self) -> Dict[str, object]:
        return {"type": self.kind, "name": self.name, "amount": self.amount}


LineItem = Union[LaborItem, MaterialItem, OverheadItem, FixedItem]
_LINE_ITEM_TYPES = {cls.kind: cls for cls in (LaborItem, MaterialItem, OverheadItem, FixedItem)}


def line_item_from_dict(raw: Mapping[str, object]) -> LineItem:
    """
    Build the line-item variant matching the populated field pair.

    An explicit ``type`` key wins. Otherwise ``hours``/``rate`` selects labor,
    ``quantity``/``unitCost`` selects material and ``months``/``monthlyCost``
    selects overhead, in that order. A bare ``estimatedCost`` (or ``amount``)
    becomes a fixed item. A mapping with none of these becomes an empty
    overhead item whose total is 0.
    """

    name = _text(_pick(raw, "name", "description"))
    hours = _pick(raw, "hours")
    rate = _pick(raw, "rate")
    quantity = _pick(raw, "quantity")
    unit_cost = _pick(raw, "unit_cost", "unitCost")
    months = _pick(raw, "months")
    monthly_cost = _pick(raw, "monthly_cost", "monthlyCost")
    amount = _pick(raw, "amount", "estimated_cost", "estimatedCost")

    kind = _text(raw.get("type")).lower()
    if kind not in _LINE_ITEM_TYPES:
        if hours is not None or rate is not None:
            kind = LaborItem.kind
        elif quantity is not None or unit_cost is not None:
            kind = MaterialItem.kind
        elif amount is not None and months is None and monthly_cost is None:
            kind = FixedItem.kind
        else:
            kind = OverheadItem.kind

    if kind == LaborItem.kind:
        return LaborItem(name=name, hours=to_number(hours), rate=to_number(rate))
    if kind == MaterialItem.kind:
        return MaterialItem(name=name, quantity=to_number(quantity), unit_cost=to_number(unit_cost))
    if kind == FixedItem.kind:
        return FixedItem(name=name, amount=to_number(amount))
    return OverheadItem(name=name, months=to_number(months), monthly_cost=to_number(monthly_cost))


@dataclass(frozen=True)
class CostCategory:
    name: str
    items: Tuple[LineItem, ...] = ()

    @property
    def total(self) -> float:
        return float(sum(item.total() for item in self.items))

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "CostCategory":
        items = raw.get("items") or []
        return cls(
            name=_text(_pick(raw, "name", "category")),
            items=tuple(line_item_from_dict(item) for item in items),  # type: ignore[union-attr]
        )

    @classmethod
    def coerce(cls, value: Union["CostCategory", Mapping[str, object]]) -> "CostCategory":
        return value if isinstance(value, cls) else cls.from_dict(value)

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "items": [item.to_dict() for item in self.items]}


def categories_from_rows(rows: Sequence[object]) -> List[CostCategory]:
    """
    Read a cost breakdown that mixes nested categories and flat rows.

    A mapping with ``items`` is a category. Any other mapping is a single
    breakdown row (``{category, estimatedCost, description}``); rows sharing a
    category name are collected into one category of fixed items, placed where
    that name first appears.
    """

    categories: List[object] = []
    flat: Dict[str, List[LineItem]] = {}
    for row in rows or ():
        if isinstance(row, CostCategory) or "items" in row:  # type: ignore[operator]
            categories.append(CostCategory.coerce(row))  # type: ignore[arg-type]
            continue
        name = _text(_pick(row, "category", "name"), "Uncategorized")  # type: ignore[arg-type]
        if name not in flat:
            flat[name] = []
            categories.append(name)
        flat[name].append(
            FixedItem(
                name=_text(row.get("description")),  # type: ignore[union-attr]
                amount=to_number(_pick(row, "estimated_cost", "estimatedCost", "amount")),  # type: ignore[arg-type]
            )
        )
    return [
        entry if isinstance(entry, CostCategory) else CostCategory(entry, tuple(flat[entry]))  # type: ignore[arg-type]
        for entry in categories
    ]


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Phase:
    name: str
    status: str = "planned"
    duration_weeks: float = 0.0
    dependencies: Tuple[str, ...] = ()

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "Phase":
        deps = raw.get("dependencies") or ()
        return cls(
            name=_text(raw.get("name")),
            status=_status(raw.get("status"), "planned"),
            duration_weeks=to_number(_pick(raw, "duration_weeks", "durationWeeks", "duration")),
            dependencies=tuple(str(dep) for dep in deps),  # type: ignore[union-attr]
        )

    @classmethod
    def coerce(cls, value: Union["Phase", Mapping[str, object]]) -> "Phase":
        return value if isinstance(value, cls) else cls.from_dict(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "status": self.status,
            "duration_weeks": self.duration_weeks,
            "dependencies": list(self.dependencies),
        }


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EstimationResource:
    """A resource line on an estimation; ``total_cost`` is filled in on save."""

    name: str = "Unknown Resource"
    kind: str = "other"
    quantity: float = 1.0
    unit_cost: float = 0.0
    total_cost: float = 0.0

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "EstimationResource":
        return cls(
            name=_text(raw.get("name")) or "Unknown Resource",
            kind=_status(_pick(raw, "kind", "type"), "other"),
            quantity=to_number(raw.get("quantity")) or 1.0,
            unit_cost=to_number(_pick(raw, "unit_cost", "unitCost")),
            total_cost=to_number(_pick(raw, "total_cost", "totalCost")),
        )

    @classmethod
    def coerce(cls, value: Union["EstimationResource", Mapping[str, object]]) -> "EstimationResource":
        return value if isinstance(value, cls) else cls.from_dict(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "type": self.kind,
            "quantity": self.quantity,
            "unit_cost": self.unit_cost,
            "total_cost": self.total_cost,
        }


def _contingency(value: object) -> object:
    # Unparseable values are kept as given so that saving rejects them
    if value is None:
        return 10.0
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace("%", "").strip())
    except ValueError:
        return value


@dataclass
class Estimation:
    """Cost estimate for one project; totals and progress are derived on save."""

    id: Optional[str] = None
    owner_id: Optional[str] = None
    project_id: Optional[str] = None
    project_name: str = ""
    categories: List[CostCategory] = field(default_factory=list)
    contingency_percent: float = 10.0
    subtotal: float = 0.0
    contingency_amount: float = 0.0
    final_cost: float = 0.0
    progress: int = 0
    phases: List[Phase] = field(default_factory=list)
    resources: List[EstimationResource] = field(default_factory=list)
    allocations: List["Allocation"] = field(default_factory=list)
    status: str = "draft"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_cost(self) -> float:
        """Cost before contingency; profitability compares ``final_cost`` against it."""
        return self.subtotal

    @property
    def resources_cost(self) -> float:
        return float(sum(resource.total_cost for resource in self.resources))

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "Estimation":
        categories = _pick(raw, "categories", "cost_breakdown", "costBreakdown", default=[])
        phases = _pick(raw, "phases", default=None)
        if phases is None:
            timeline = raw.get("timeline") or {}
            phases = timeline.get("phases", []) if isinstance(timeline, Mapping) else []
        return cls(
            id=_optional_id(_pick(raw, "id", "_id")),
            owner_id=_optional_id(_pick(raw, "owner_id", "userId")),
            project_id=_optional_id(_pick(raw, "project_id", "projectId")),
            project_name=_text(_pick(raw, "project_name", "projectName")),
            categories=categories_from_rows(categories),  # type: ignore[arg-type]
            contingency_percent=_contingency(_pick(raw, "contingency_percent", "contingency")),  # type: ignore[arg-type]
            subtotal=to_number(_pick(raw, "subtotal", "total_cost", "totalCost")),
            contingency_amount=to_number(_pick(raw, "contingency_amount", "contingencyAmount")),
            final_cost=to_number(_pick(raw, "final_cost", "finalCost")),
            progress=int(to_number(raw.get("progress"))),
            phases=[Phase.coerce(p) for p in phases],  # type: ignore[union-attr]
            resources=[EstimationResource.coerce(r) for r in raw.get("resources") or ()],  # type: ignore[union-attr]
            allocations=[Allocation.coerce(a) for a in raw.get("allocations") or ()],  # type: ignore[union-attr]
            status=_status(raw.get("status"), "draft"),
            created_at=to_datetime(_pick(raw, "created_at", "createdAt")),
            updated_at=to_datetime(_pick(raw, "updated_at", "updatedAt")),
        )

    @classmethod
    def coerce(cls, value: Union["Estimation", Mapping[str, object]]) -> "Estimation":
        return value if isinstance(value, cls) else cls.from_dict(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "project_id": self.project_id,
            "project_name": self.project_name,
            "categories": [c.to_dict() for c in self.categories],
            "contingency_percent": self.contingency_percent,
            "subtotal": self.subtotal,
            "contingency_amount": self.contingency_amount,
            "final_cost": self.final_cost,
            "progress": self.progress,
            "phases": [p.to_dict() for p in self.phases],
            "resources": [r.to_dict() for r in self.resources],
            "allocations": [a.to_dict() for a in self.allocations],
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class Project:
    id: Optional[str] = None
    owner_id: Optional[str] = None
    name: str = ""
    status: str = "planning"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    estimated_budget: float = 0.0
    team: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "Project":
        team = raw.get("team") or raw.get("teamMembers") or ()
        member_ids = []
        for entry in team:  # type: ignore[union-attr]
            # Team entries are either bare member ids or {"userId": ..., "role": ...}
            if isinstance(entry, Mapping):
                entry = _pick(entry, "member_id", "userId", "id")
            if entry is not None:
                member_ids.append(str(entry))
        return cls(
            id=_optional_id(_pick(raw, "id", "_id")),
            owner_id=_optional_id(_pick(raw, "owner_id", "userId")),
            name=_text(_pick(raw, "name", "projectName")),
            status=_status(raw.get("status"), "planning"),
            start_date=to_datetime(_pick(raw, "start_date", "startDate")),
            end_date=to_datetime(_pick(raw, "end_date", "endDate")),
            estimated_budget=to_number(_pick(raw, "estimated_budget", "estimatedBudget")),
            team=tuple(member_ids),
            created_at=to_datetime(_pick(raw, "created_at", "createdAt")),
        )

    @classmethod
    def coerce(cls, value: Union["Project", Mapping[str, object]]) -> "Project":
        return value if isinstance(value, cls) else cls.from_dict(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "status": self.status,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "estimated_budget": self.estimated_budget,
            "team": list(self.team),
            "created_at": _iso(self.created_at),
        }


@dataclass
class TeamMember:
    id: Optional[str] = None
    owner_id: Optional[str] = None
    name: str = ""
    role: str = ""
    availability: str = "available"
    hourly_rate: float = 0.0
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "TeamMember":
        return cls(
            id=_optional_id(_pick(raw, "id", "_id")),
            owner_id=_optional_id(_pick(raw, "owner_id", "userId")),
            name=_text(raw.get("name")),
            role=_text(raw.get("role")).lower(),
            availability=_status(raw.get("availability"), "available"),
            hourly_rate=to_number(_pick(raw, "hourly_rate", "hourlyRate")),
            created_at=to_datetime(_pick(raw, "created_at", "createdAt")),
        )

    @classmethod
    def coerce(cls, value: Union["TeamMember", Mapping[str, object]]) -> "TeamMember":
        return value if isinstance(value, cls) else cls.from_dict(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "role": self.role,
            "availability": self.availability,
            "hourly_rate": self.hourly_rate,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Resource:
    id: Optional[str] = None
    owner_id: Optional[str] = None
    name: str = ""
    kind: str = "other"
    unit_cost: float = 0.0
    available: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "Resource":
        available = raw.get("available", raw.get("availability", True))
        if isinstance(available, str):
            available = available.strip().lower() in {"available", "true", "1", "yes"}
        return cls(
            id=_optional_id(_pick(raw, "id", "_id")),
            owner_id=_optional_id(_pick(raw, "owner_id", "userId")),
            name=_text(raw.get("name")),
            kind=_status(_pick(raw, "kind", "type"), "other"),
            unit_cost=to_number(_pick(raw, "unit_cost", "unitCost")),
            available=bool(available),
            created_at=to_datetime(_pick(raw, "created_at", "createdAt")),
        )

    @classmethod
    def coerce(cls, value: Union["Resource", Mapping[str, object]]) -> "Resource":
        return value if isinstance(value, cls) else cls.from_dict(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "kind": self.kind,
            "unit_cost": self.unit_cost,
            "available": self.available,
            "created_at": _iso(self.created_at),
        }


@dataclass(frozen=True)
class Allocation:
    """Share of a resource's capacity assigned to a project for a number of weeks."""

    resource_id: str
    allocation_percent: float = 100.0
    weeks: float = 4.0
    project_id: Optional[str] = None
    role: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "Allocation":
        return cls(
            resource_id=_text(_pick(raw, "resource_id", "resourceId")),
            allocation_percent=to_number(_pick(raw, "allocation_percent", "allocationPercentage", default=100)),
            weeks=to_number(_pick(raw, "weeks", default=4)),
            project_id=_optional_id(_pick(raw, "project_id", "projectId")),
            role=_text(raw.get("role")),
        )

    @classmethod
    def coerce(cls, value: Union["Allocation", Mapping[str, object]]) -> "Allocation":
        return value if isinstance(value, cls) else cls.from_dict(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "resource_id": self.resource_id,
            "allocation_percent": self.allocation_percent,
            "weeks": self.weeks,
            "project_id": self.project_id,
            "role": self.role,
        }


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CostTotals:
    subtotal: float
    contingency_amount: float
    final_cost: float


@dataclass(frozen=True)
class DashboardStats:
    total_projects: int = 0
    total_estimations: int = 0
    total_value: float = 0.0
    active_projects: int = 0
    completed_projects: int = 0
    active_estimations: int = 0
    completed_estimations: int = 0


@dataclass(frozen=True)
class EstimationSummary:
    total_estimations: int = 0
    total_value: float = 0.0
    draft_estimations: int = 0
    completed_estimations: int = 0
    avg_estimation_value: float = 0.0


def _optional_id(value: object | None) -> Optional[str]:
    text = _text(value)
    return text or None


def coerce_all(cls, values: Sequence[object]) -> list:
    """Coerce a sequence of records or raw mappings into ``cls`` instances."""

    return [cls.coerce(value) for value in values or ()]


__all__ = [
    "PHASE_STATUSES",
    "PROJECT_STATUSES",
    "ESTIMATION_STATUSES",
    "AVAILABILITY_CHOICES",
    "RESOURCE_KINDS",
    "LaborItem",
    "MaterialItem",
    "OverheadItem",
    "FixedItem",
    "LineItem",
    "line_item_from_dict",
    "CostCategory",
    "categories_from_rows",
    "Phase",
    "EstimationResource",
    "Estimation",
    "Project",
    "TeamMember",
    "Resource",
    "Allocation",
    "CostTotals",
    "DashboardStats",
    "EstimationSummary",
    "coerce_all",
    "to_datetime",
]
