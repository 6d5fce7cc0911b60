"""Bounded spatial search for the best anchor cell of a building type."""

from __future__ import annotations

import math

from autocity.catalog import BuildingCatalog
from autocity.economy import StatisticsEngine, count_nearby
from autocity.models import CityState, LocationChoice
from autocity.placement import PlacementPredicate, can_place

SEARCH_RADIUS = 10
_CENTER_TYPES = ("residential", "commercial")


class LocationSearch:
    """Scans squares around the origin and the existing residential/commercial structures.

    Scan order is centers in list order, then ``x`` ascending, then ``y``
    ascending; on equal scores the first cell found wins.
    """

    def __init__(
        self,
        catalog: BuildingCatalog,
        statistics: StatisticsEngine,
        *,
        placement: PlacementPredicate = can_place,
        radius: int = SEARCH_RADIUS,
    ) -> None:
        self._catalog = catalog
        self._statistics = statistics
        self._placement = placement
        self._radius = radius

    def search_centers(self, city: CityState) -> list[tuple[int, int]]:
        centers = [(0, 0)]
        centers.extend((s.x, s.y) for s in city.structures if s.type in _CENTER_TYPES)
        return centers

    def find_best_location(self, building_type: str, city: CityState) -> LocationChoice | None:
        best: LocationChoice | None = None
        best_score = -1.0
        radius = self._radius
        for cx, cy in self.search_centers(city):
            for x in range(cx - radius, cx + radius + 1):
                for y in range(cy - radius, cy + radius + 1):
                    if not self._placement(self._catalog, building_type, x, y, city).can_place:
                        continue
                    score = self.score_location(building_type, x, y, city)
                    if score > best_score:
                        best_score = score
                        best = LocationChoice(x=x, y=y, score=score)
        return best

    def score_location(self, building_type: str, x: int, y: int, city: CityState) -> float:
        score = 50.0
        score += self._statistics.evaluate_location(city, building_type, x, y).score * 0.5
        score += self._distance_score(building_type, x, y, city)

        if building_type == "industrial":
            if _min_distance_to(city, x, y, "residential") > 3:
                score += 20
        elif building_type == "park":
            score += count_nearby(city, x, y, "residential", 3) * 5
        return score

    @staticmethod
    def _distance_score(building_type: str, x: int, y: int, city: CityState) -> float:
        score = 0.0
        for structure in city.structures:
            if structure.type != "residential":
                continue
            distance = math.dist((x, y), (structure.x, structure.y))
            if building_type == "commercial":
                score += max(0, 10 - distance)
            elif building_type == "industrial":
                score += min(10, distance)
        return score


def _min_distance_to(city: CityState, x: int, y: int, building_type: str) -> float:
    distances = [math.dist((x, y), (s.x, s.y)) for s in city.structures if s.type == building_type]
    return min(distances) if distances else 0
