from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from .catalog import INITIAL_RESOURCES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Structure:
    type: str
    x: int
    y: int
    id: str = field(default_factory=lambda: uuid4().hex)
    level: int = 1
    created_at: datetime = field(default_factory=_utcnow)
    built_by_automation: bool = False
    automation_rationale: str | None = None


@dataclass(slots=True)
class ResourceState:
    money: float = INITIAL_RESOURCES["money"]
    population: float = INITIAL_RESOURCES["population"]
    happiness: float = INITIAL_RESOURCES["happiness"]
    power_capacity: float = INITIAL_RESOURCES["power_capacity"]
    power_used: float = INITIAL_RESOURCES["power_used"]
    pollution: float = INITIAL_RESOURCES["pollution"]
    education: float = INITIAL_RESOURCES["education"]
    health: float = INITIAL_RESOURCES["health"]
    safety: float = INITIAL_RESOURCES["safety"]


@dataclass(slots=True)
class CityState:
    """Mutable city handle: placed structures plus the resource ledger."""

    structures: list[Structure] = field(default_factory=list)
    resources: ResourceState = field(default_factory=ResourceState)

    def copy(self) -> CityState:
        return CityState(structures=list(self.structures), resources=replace(self.resources))

    def count(self, building_type: str) -> int:
        return sum(1 for structure in self.structures if structure.type == building_type)

    def to_dict(self) -> dict[str, Any]:
        structures = []
        for structure in self.structures:
            payload = asdict(structure)
            payload["created_at"] = structure.created_at.isoformat()
            structures.append(payload)
        return {"structures": structures, "resources": asdict(self.resources)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CityState:
        structures = []
        for item in payload.get("structures", []):
            data = dict(item)
            if isinstance(data.get("created_at"), str):
                data["created_at"] = datetime.fromisoformat(data["created_at"])
            structures.append(Structure(**data))
        resources = ResourceState(**payload.get("resources", {}))
        return cls(structures=structures, resources=resources)


@dataclass(slots=True)
class HappinessFactors:
    base: float = 50
    buildings: float = 0
    services: float = 0
    pollution: float = 0
    overcrowding: float = 0

    def total(self) -> float:
        return self.base + self.buildings + self.services + self.pollution + self.overcrowding


@dataclass(slots=True)
class Statistics:
    """Derived economy figures, rebuilt from scratch on every recompute."""

    total_buildings: int = 0
    total_income: int = 0
    total_expenses: int = 0
    power_generation: float = 0
    power_consumption: float = 0
    building_counts: dict[str, int] = field(default_factory=dict)
    happiness_factors: HappinessFactors = field(default_factory=HappinessFactors)
    land_value_average: int = 100
    population_growth: int = 0

    @property
    def net_income(self) -> int:
        return self.total_income - self.total_expenses

    @property
    def power_balance(self) -> float:
        return self.power_generation - self.power_consumption


class DevelopmentStage(str, Enum):
    EARLY = "early"
    GROWTH = "growth"
    MATURE = "mature"


@dataclass(slots=True)
class Needs:
    housing: float = 0.0
    power: float = 0.0
    happiness: float = 0.0
    income: float = 0.0
    services: float = 0.0


@dataclass(slots=True)
class CityAnalysis:
    """Snapshot of the city taken at the start of a planning step."""

    population: float
    money: float
    happiness: float
    power_balance: float
    net_income: float
    building_counts: dict[str, int]
    needs: Needs
    development_stage: DevelopmentStage
    available_budget: float
    total_buildings: int = 0
    category_weights: dict[str, float] = field(default_factory=dict)

    def count(self, building_type: str) -> int:
        return self.building_counts.get(building_type, 0)


@dataclass(slots=True)
class PlacementCheck:
    can_place: bool
    reason: str | None = None


@dataclass(slots=True)
class LocationEvaluation:
    score: float
    reasons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class LocationChoice:
    x: int
    y: int
    score: float


@dataclass(slots=True)
class AdvisoryResult:
    """Outcome of an advisory consultation, successful or locally substituted."""

    succeeded: bool
    analysis: str
    priorities: list[str] = field(default_factory=list)
    suggestions: str = ""
    risks: str = ""
    raw_response: str = ""


@dataclass(slots=True)
class ConnectionCheck:
    succeeded: bool
    detail: str


@dataclass(slots=True)
class PriorityItem:
    building_type: str
    score: float
    cost: int
    reason: str
    advisory_reason: str | None = None


@dataclass(frozen=True, slots=True)
class BuildAction:
    building_type: str
    x: int
    y: int
    cost: int
    priority_score: float
    rationale: str
    advisory_rationale: str | None = None
    location_score: float = 0.0


@dataclass(frozen=True, slots=True)
class Plan:
    actions: tuple[BuildAction, ...]
    total_cost: int
    analysis: CityAnalysis
    advisory: AdvisoryResult | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class PlanRecord:
    """History entry for one executed plan."""

    plan: Plan
    placed: tuple[str, ...] = ()
    skipped: tuple[tuple[str, str], ...] = ()
    completed_at: datetime = field(default_factory=_utcnow)


@dataclass(slots=True)
class Suggestion:
    building_type: str
    reason: str
    priority: float
    cost: int
    source: str = "local"
    advisory_detail: str | None = None


@dataclass(slots=True)
class AutomationStatus:
    enabled: bool
    is_planning: bool
    use_advisory: bool
    total_plans: int
    last_plan: PlanRecord | None
    last_advisory: AdvisoryResult | None


def _default_weights() -> dict[str, float]:
    return {"population": 0.3, "happiness": 0.25, "income": 0.2, "power": 0.15, "services": 0.1}


@dataclass(slots=True)
class PlannerConfig:
    """Runtime-mutable planner knobs, read at the start of every cycle."""

    enabled: bool = False
    cycle_interval_seconds: float = 10.0
    budget_reserve: float = 1_000
    max_actions_per_cycle: int = 3
    use_advisory: bool = True
    category_weights: dict[str, float] = field(default_factory=_default_weights)
    advisory_timeout_seconds: float = 8.0
    pacing_delay_seconds: float = 1.0

    @classmethod
    def from_settings(cls, settings: Any) -> PlannerConfig:
        return cls(
            enabled=settings.planner_enabled,
            cycle_interval_seconds=settings.planner_cycle_interval_seconds,
            budget_reserve=settings.planner_budget_reserve,
            max_actions_per_cycle=settings.planner_max_actions_per_cycle,
            use_advisory=settings.advisory_enabled,
            advisory_timeout_seconds=settings.advisory_timeout_seconds,
            pacing_delay_seconds=settings.planner_pacing_delay_seconds,
        )
