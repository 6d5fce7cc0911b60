"""Static building definitions and economy mechanics constants."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping


@dataclass(frozen=True, slots=True)
class BuildingRequirements:
    """Adjacency rules a placement must satisfy."""

    near_road: bool = False
    near_residential: bool = False


@dataclass(frozen=True, slots=True)
class BuildingDefinition:
    """Catalog entry for one buildable type."""

    key: str
    name: str
    cost: int
    width: int = 1
    height: int = 1
    effects: Mapping[str, float] = field(default_factory=dict)
    requirements: BuildingRequirements = field(default_factory=BuildingRequirements)

    def effect(self, name: str) -> float:
        return self.effects.get(name, 0)


@dataclass(frozen=True, slots=True)
class Mechanics:
    """Economy tuning constants shared by statistics and placement rules."""

    tax_rate_residential: float = 5
    tax_rate_commercial: float = 10
    tax_rate_industrial: float = 15
    maintenance_rate: float = 0.01
    influence_radius: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({"park": 3, "school": 5, "hospital": 4, "police": 4, "power": 6})
    )
    road_check_radius: int = 2
    residential_check_radius: int = 3
    housing_per_residential: int = 4
    service_coverage_per_building: int = 20
    happiness_base: float = 50


INITIAL_RESOURCES: Mapping[str, float] = MappingProxyType(
    {
        "money": 10_000,
        "population": 0,
        "happiness": 50,
        "power_capacity": 100,
        "power_used": 0,
        "pollution": 0,
        "education": 0,
        "health": 0,
        "safety": 0,
    }
)


class BuildingCatalog:
    """Immutable lookup from building-type key to its definition.

    Iteration follows declaration order, which callers rely on for stable
    tie-breaking.
    """

    def __init__(self, definitions: list[BuildingDefinition], mechanics: Mechanics | None = None) -> None:
        self._definitions: Mapping[str, BuildingDefinition] = MappingProxyType(
            {definition.key: definition for definition in definitions}
        )
        self.mechanics = mechanics or Mechanics()

    def get(self, key: str) -> BuildingDefinition | None:
        return self._definitions.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._definitions

    def __iter__(self) -> Iterator[BuildingDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def keys(self) -> list[str]:
        return list(self._definitions)

    def footprint(self, key: str) -> tuple[int, int]:
        """Return ``(width, height)``; unknown types occupy a single cell."""
        definition = self.get(key)
        if definition is None:
            return 1, 1
        return definition.width, definition.height


_ROAD_ONLY = BuildingRequirements(near_road=True)

DEFAULT_BUILDINGS: list[BuildingDefinition] = [
    BuildingDefinition(key="road", name="Road", cost=10, effects={"traffic": 1}),
    BuildingDefinition(
        key="residential",
        name="Residential",
        cost=100,
        effects={"population": 4, "happiness": 2, "powerConsumption": 2},
        requirements=_ROAD_ONLY,
    ),
    BuildingDefinition(
        key="commercial",
        name="Commercial",
        cost=150,
        effects={"income": 8, "jobs": 6, "happiness": 1, "powerConsumption": 3},
        requirements=BuildingRequirements(near_road=True, near_residential=True),
    ),
    BuildingDefinition(
        key="industrial",
        name="Industrial",
        cost=200,
        width=2,
        height=2,
        effects={"income": 15, "jobs": 10, "pollution": 3, "powerConsumption": 5},
        requirements=_ROAD_ONLY,
    ),
    BuildingDefinition(key="park", name="Park", cost=50, effects={"happiness": 8, "environment": 5}),
    BuildingDefinition(
        key="power",
        name="Power Plant",
        cost=500,
        width=2,
        height=2,
        effects={"powerGeneration": 50, "pollution": 2, "jobs": 5},
        requirements=_ROAD_ONLY,
    ),
    BuildingDefinition(
        key="school",
        name="School",
        cost=300,
        width=2,
        height=2,
        effects={"education": 15, "happiness": 3, "jobs": 8, "powerConsumption": 4},
        requirements=_ROAD_ONLY,
    ),
    BuildingDefinition(
        key="hospital",
        name="Hospital",
        cost=400,
        width=2,
        height=2,
        effects={"health": 20, "happiness": 5, "jobs": 12, "powerConsumption": 6},
        requirements=_ROAD_ONLY,
    ),
    BuildingDefinition(
        key="police",
        name="Police Station",
        cost=250,
        effects={"safety": 15, "happiness": 2, "jobs": 6, "powerConsumption": 3},
        requirements=_ROAD_ONLY,
    ),
]


def default_catalog() -> BuildingCatalog:
    return BuildingCatalog(DEFAULT_BUILDINGS)
