"""Per-type build strategies: base priority, gate predicate and rationale.

The table order is significant: it breaks score ties when ranking.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping

from autocity.models import CityAnalysis

Gate = Callable[[CityAnalysis], bool]


@dataclass(frozen=True, slots=True)
class Strategy:
    priority: int
    gate: Gate
    reason: str


def needs_roads(analysis: CityAnalysis) -> bool:
    zoned = analysis.count("residential") + analysis.count("commercial") + analysis.count("industrial")
    return analysis.count("road") < zoned * 0.3


def needs_housing(analysis: CityAnalysis) -> bool:
    capacity = analysis.count("residential") * 4
    return analysis.population > capacity * 0.8


def needs_power(analysis: CityAnalysis) -> bool:
    return analysis.power_balance < 20


def needs_commerce(analysis: CityAnalysis) -> bool:
    residential = analysis.count("residential")
    return residential > 0 and analysis.count("commercial") < residential * 0.5


def _per_capita(analysis: CityAnalysis, building_type: str, people_per_building: int) -> bool:
    population = analysis.population
    return population > people_per_building and analysis.count(building_type) < math.floor(
        population / people_per_building
    )


def needs_industry(analysis: CityAnalysis) -> bool:
    return _per_capita(analysis, "industrial", 20)


def needs_happiness(analysis: CityAnalysis) -> bool:
    return analysis.happiness < 60


def needs_education(analysis: CityAnalysis) -> bool:
    return _per_capita(analysis, "school", 50)


def needs_health(analysis: CityAnalysis) -> bool:
    return _per_capita(analysis, "hospital", 80)


def needs_safety(analysis: CityAnalysis) -> bool:
    return _per_capita(analysis, "police", 60)


STRATEGY_TABLE: Mapping[str, Strategy] = MappingProxyType(
    {
        "road": Strategy(10, needs_roads, "improve traffic"),
        "residential": Strategy(8, needs_housing, "grow population"),
        "power": Strategy(9, needs_power, "power shortage"),
        "commercial": Strategy(6, needs_commerce, "raise income"),
        "industrial": Strategy(5, needs_industry, "create jobs"),
        "park": Strategy(4, needs_happiness, "improve happiness"),
        "school": Strategy(3, needs_education, "provide education"),
        "hospital": Strategy(3, needs_health, "provide healthcare"),
        "police": Strategy(2, needs_safety, "keep order"),
    }
)
