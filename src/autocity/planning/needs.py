"""Normalized need scores derived from resources and structure counts."""

from __future__ import annotations

from autocity.models import DevelopmentStage, Needs, ResourceState, Statistics

HOUSING_PER_RESIDENTIAL = 4
_SERVICE_COUNTED = ("school", "hospital", "police")


def housing_need(population: float, residential_count: int) -> float:
    return population / max(1, residential_count * HOUSING_PER_RESIDENTIAL)


def power_need(power_balance: float) -> float:
    return max(0.0, 1 - power_balance / 50)


def happiness_need(happiness: float) -> float:
    return max(0.0, (60 - happiness) / 60)


def income_need(net_income: float) -> float:
    return max(0.0, -net_income / 100)


def service_need(population: float, building_counts: dict[str, int]) -> float:
    services = sum(building_counts.get(building_type, 0) for building_type in _SERVICE_COUNTED)
    return max(0.0, population / 30 - services)


def evaluate_needs(resources: ResourceState, statistics: Statistics) -> Needs:
    counts = statistics.building_counts
    return Needs(
        housing=housing_need(resources.population, counts.get("residential", 0)),
        power=power_need(statistics.power_balance),
        happiness=happiness_need(resources.happiness),
        income=income_need(statistics.net_income),
        services=service_need(resources.population, counts),
    )


def development_stage(population: float, total_buildings: int) -> DevelopmentStage:
    if population < 20 or total_buildings < 10:
        return DevelopmentStage.EARLY
    if population < 100 or total_buildings < 30:
        return DevelopmentStage.GROWTH
    return DevelopmentStage.MATURE
