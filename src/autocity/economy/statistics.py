"""Economy aggregation: derives city statistics from the placed structures.

Every call to :meth:`StatisticsEngine.recompute` rebuilds its figures from the
structure list and the catalog alone, so repeated calls over the same city are
identical. Unknown building types contribute nothing.
"""

from __future__ import annotations

import logging
import math

from autocity.catalog import BuildingCatalog
from autocity.models import CityState, HappinessFactors, LocationEvaluation, Statistics

SERVICE_TYPES = ("school", "hospital", "police", "park")

_EFFECT_FIELDS = (
    "population",
    "happiness",
    "powerGeneration",
    "powerConsumption",
    "income",
    "jobs",
    "education",
    "health",
    "safety",
    "pollution",
    "environment",
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class StatisticsEngine:
    """Recomputes statistics and writes the resulting resource figures back."""

    def __init__(self, catalog: BuildingCatalog, *, logger: logging.Logger | None = None) -> None:
        self._catalog = catalog
        self._mechanics = catalog.mechanics
        self._logger = logger or logging.getLogger("autocity.economy")

    def recompute(self, city: CityState) -> Statistics:
        """Rebuild statistics and apply one tick of income and expenses to ``city``."""
        statistics = self.compute(city)
        self.apply_changes(city, statistics)
        self._logger.debug(
            "statistics_recomputed",
            extra={
                "total_buildings": statistics.total_buildings,
                "income": statistics.total_income,
                "expenses": statistics.total_expenses,
                "money": city.resources.money,
            },
        )
        return statistics

    def compute(self, city: CityState) -> Statistics:
        """Derive statistics without touching the resource ledger."""
        totals, counts = self._accumulate(city)
        population = max(0, totals["population"])

        factors = HappinessFactors(base=self._mechanics.happiness_base)
        factors.buildings = totals["happiness"]
        factors.services = self._service_bonus(population, counts)
        factors.pollution = -totals["pollution"] * 2
        factors.overcrowding = self._overcrowding_penalty(population, counts)

        statistics = Statistics(
            total_buildings=len(city.structures),
            power_generation=totals["powerGeneration"],
            power_consumption=totals["powerConsumption"],
            building_counts=counts,
            happiness_factors=factors,
        )
        happiness = self.happiness(statistics)
        statistics.total_income = self._tax_income(population, counts, happiness)
        statistics.total_expenses = self._maintenance(city)
        statistics.land_value_average = self.average_land_value(city)
        statistics.population_growth = self._population_growth(population, happiness, counts)
        return statistics

    def apply_changes(self, city: CityState, statistics: Statistics) -> None:
        totals, _ = self._accumulate(city)
        resources = city.resources
        resources.money = max(0, resources.money + statistics.total_income - statistics.total_expenses)
        resources.happiness = self.happiness(statistics)
        resources.population = max(0, totals["population"])
        resources.power_capacity = statistics.power_generation
        resources.power_used = statistics.power_consumption
        resources.education = max(0, totals["education"])
        resources.health = max(0, totals["health"])
        resources.safety = max(0, totals["safety"])
        resources.pollution = max(0, totals["pollution"])

    @staticmethod
    def happiness(statistics: Statistics) -> float:
        total = statistics.happiness_factors.total()
        if statistics.power_consumption > statistics.power_generation:
            total -= 20
        return _clamp(total, 0, 100)

    def influence_at(self, city: CityState, x: int, y: int, effect: str) -> float:
        """Distance-attenuated sum of ``effect`` from structures whose radius covers ``(x, y)``."""
        total = 0.0
        for structure in city.structures:
            definition = self._catalog.get(structure.type)
            if definition is None or not definition.effect(effect):
                continue
            radius = self._mechanics.influence_radius.get(structure.type, 0)
            if radius == 0:
                continue
            distance = math.dist((x, y), (structure.x, structure.y))
            if distance <= radius:
                total += definition.effect(effect) * (1 - distance / radius)
        return total

    def land_value(self, city: CityState, x: int, y: int) -> int:
        park = self.influence_at(city, x, y, "happiness")
        pollution = self.influence_at(city, x, y, "pollution")
        services = (
            self.influence_at(city, x, y, "education")
            + self.influence_at(city, x, y, "health")
            + self.influence_at(city, x, y, "safety")
        )
        return max(50, math.floor(100 + park * 5 + services * 2 - pollution * 3))

    def average_land_value(self, city: CityState) -> int:
        if not city.structures:
            return 100
        total = sum(self.land_value(city, structure.x, structure.y) for structure in city.structures)
        return math.floor(total / len(city.structures))

    def evaluate_location(self, city: CityState, building_type: str, x: int, y: int) -> LocationEvaluation:
        """Generic placement-quality score in ``0..100`` with human-readable reasons."""
        if self._catalog.get(building_type) is None:
            return LocationEvaluation(score=0)

        score = 50.0
        reasons: list[str] = []
        if building_type == "residential":
            services = (
                self.influence_at(city, x, y, "education")
                + self.influence_at(city, x, y, "health")
                + self.influence_at(city, x, y, "safety")
            )
            pollution = self.influence_at(city, x, y, "pollution")
            score += services * 2 - pollution * 3
            if services > 0:
                reasons.append("close to services")
            if pollution > 0:
                reasons.append("polluted area")
        elif building_type == "commercial":
            nearby_population = self.influence_at(city, x, y, "population")
            score += nearby_population * 1.5
            if nearby_population > 0:
                reasons.append("dense population")
        elif building_type == "industrial":
            residential_nearby = count_nearby(city, x, y, "residential", 3)
            score -= residential_nearby * 5
            if residential_nearby > 0:
                reasons.append("close to housing")

        return LocationEvaluation(score=_clamp(score, 0, 100), reasons=reasons)

    def _accumulate(self, city: CityState) -> tuple[dict[str, float], dict[str, int]]:
        totals = {name: 0.0 for name in _EFFECT_FIELDS}
        counts: dict[str, int] = {}
        for structure in city.structures:
            definition = self._catalog.get(structure.type)
            if definition is None:
                continue
            counts[structure.type] = counts.get(structure.type, 0) + 1
            for name, value in definition.effects.items():
                if name in totals:
                    totals[name] += value
        return totals, counts

    def _service_bonus(self, population: float, counts: dict[str, int]) -> int:
        if population == 0:
            return 0
        bonus = 0.0
        for building_type in SERVICE_TYPES:
            if self._catalog.get(building_type) is None:
                continue
            capacity = counts.get(building_type, 0) * self._mechanics.service_coverage_per_building
            bonus += min(1, capacity / population) * 5
        return math.floor(bonus)

    def _overcrowding_penalty(self, population: float, counts: dict[str, int]) -> int:
        residential = counts.get("residential", 0)
        if residential == 0:
            return 0
        occupancy = population / (residential * self._mechanics.housing_per_residential)
        if occupancy > 1.5:
            return -math.floor((occupancy - 1.5) * 10)
        return 0

    def _tax_income(self, population: float, counts: dict[str, int], happiness: float) -> int:
        mechanics = self._mechanics
        gross = (
            population * mechanics.tax_rate_residential
            + counts.get("commercial", 0) * mechanics.tax_rate_commercial
            + counts.get("industrial", 0) * mechanics.tax_rate_industrial
        )
        efficiency = max(0.5, happiness / 100)
        return math.floor(gross * efficiency)

    def _maintenance(self, city: CityState) -> int:
        total = 0.0
        for structure in city.structures:
            definition = self._catalog.get(structure.type)
            if definition is not None:
                total += definition.cost * self._mechanics.maintenance_rate
        return math.floor(total)

    def _population_growth(self, population: float, happiness: float, counts: dict[str, int]) -> int:
        capacity = counts.get("residential", 0) * self._mechanics.housing_per_residential
        if population < capacity and happiness > 60:
            return math.floor((happiness - 60) / 100 * 2)
        if happiness < 40:
            return -math.floor((40 - happiness) / 100 * 2)
        return 0


def count_nearby(city: CityState, x: int, y: int, building_type: str, radius: float) -> int:
    return sum(
        1
        for structure in city.structures
        if structure.type == building_type and math.dist((x, y), (structure.x, structure.y)) <= radius
    )
