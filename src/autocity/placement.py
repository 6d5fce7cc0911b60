"""Placement-validity rules: funds, footprint occupancy and adjacency."""

from __future__ import annotations

from typing import Protocol

from .catalog import BuildingCatalog
from .models import CityState, PlacementCheck


class PlacementPredicate(Protocol):
    def __call__(self, catalog: BuildingCatalog, building_type: str, x: int, y: int, city: CityState) -> PlacementCheck:
        """Decide whether ``building_type`` may be anchored at ``(x, y)``."""


def _overlaps(ax: int, ay: int, aw: int, ah: int, bx: int, by: int, bw: int, bh: int) -> bool:
    return ax < bx + bw and bx < ax + aw and ay < by + bh and by < ay + ah


def _has_nearby(
    city: CityState,
    building_type: str,
    x: int,
    y: int,
    width: int,
    height: int,
    radius: int,
) -> bool:
    for structure in city.structures:
        if structure.type != building_type:
            continue
        if x - radius <= structure.x <= x + width + radius and y - radius <= structure.y <= y + height + radius:
            return True
    return False


def can_place(catalog: BuildingCatalog, building_type: str, x: int, y: int, city: CityState) -> PlacementCheck:
    definition = catalog.get(building_type)
    if definition is None:
        return PlacementCheck(False, "unknown building type")

    if city.resources.money < definition.cost:
        return PlacementCheck(False, "insufficient funds")

    for structure in city.structures:
        width, height = catalog.footprint(structure.type)
        if _overlaps(x, y, definition.width, definition.height, structure.x, structure.y, width, height):
            return PlacementCheck(False, "location occupied")

    mechanics = catalog.mechanics
    requirements = definition.requirements
    if requirements.near_road and not _has_nearby(
        city, "road", x, y, definition.width, definition.height, mechanics.road_check_radius
    ):
        return PlacementCheck(False, "requires nearby road")

    if requirements.near_residential and not _has_nearby(
        city, "residential", x, y, definition.width, definition.height, mechanics.residential_check_radius
    ):
        return PlacementCheck(False, "requires nearby residential")

    return PlacementCheck(True)
