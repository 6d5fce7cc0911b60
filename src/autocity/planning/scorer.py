"""Candidate ranking from the strategy table, needs and advisory input."""

from __future__ import annotations

from typing import Mapping

from autocity.catalog import BuildingCatalog
from autocity.models import AdvisoryResult, CityAnalysis, DevelopmentStage, PriorityItem, Suggestion

from .strategy import STRATEGY_TABLE, Strategy

STAGE_FAVOURITES: Mapping[DevelopmentStage, tuple[str, ...]] = {
    DevelopmentStage.EARLY: ("road", "residential", "power"),
    DevelopmentStage.GROWTH: ("commercial", "industrial"),
    DevelopmentStage.MATURE: ("school", "hospital", "park"),
}
STAGE_BONUS = 15
ADVISORY_RANKS = 3
ADVISORY_STEP = 20


def _type_bonus(building_type: str, analysis: CityAnalysis) -> float:
    if building_type == "residential" and analysis.needs.housing > 0.7:
        return 30
    if building_type == "power" and analysis.power_balance < 10:
        return 50
    if building_type == "commercial" and analysis.needs.income > 0.6:
        return 20
    if building_type == "park" and analysis.happiness < 40:
        return 25
    return 0


def advisory_bonus(building_type: str, advisory: AdvisoryResult | None) -> float:
    """``(3 - rank) * 20`` for the advisory's top three picks, else 0."""
    if advisory is None or not advisory.succeeded or building_type not in advisory.priorities:
        return 0
    rank = advisory.priorities.index(building_type)
    if rank >= ADVISORY_RANKS:
        return 0
    return (ADVISORY_RANKS - rank) * ADVISORY_STEP


class PriorityScorer:
    """Scores every building type whose gate predicate currently holds."""

    def __init__(self, catalog: BuildingCatalog, strategies: Mapping[str, Strategy] = STRATEGY_TABLE) -> None:
        self._catalog = catalog
        self._strategies = strategies

    def gate_holds(self, building_type: str, analysis: CityAnalysis) -> bool:
        strategy = self._strategies.get(building_type)
        return strategy is not None and strategy.gate(analysis)

    def score(self, building_type: str, analysis: CityAnalysis, advisory: AdvisoryResult | None = None) -> float:
        strategy = self._strategies[building_type]
        score = strategy.priority * 10 + _type_bonus(building_type, analysis)
        if building_type in STAGE_FAVOURITES.get(analysis.development_stage, ()):
            score += STAGE_BONUS
        return score + advisory_bonus(building_type, advisory)

    def rank(self, analysis: CityAnalysis, advisory: AdvisoryResult | None = None) -> list[PriorityItem]:
        """Return gated candidates by descending score; ties keep strategy-table order."""
        items: list[PriorityItem] = []
        for building_type, strategy in self._strategies.items():
            definition = self._catalog.get(building_type)
            if definition is None or not strategy.gate(analysis):
                continue

            advisory_reason = None
            if advisory is not None and advisory.succeeded and building_type in advisory.priorities:
                advisory_reason = f"Advisory: {advisory.suggestions}"

            items.append(
                PriorityItem(
                    building_type=building_type,
                    score=self.score(building_type, analysis, advisory),
                    cost=definition.cost,
                    reason=strategy.reason,
                    advisory_reason=advisory_reason,
                )
            )
        return sorted(items, key=lambda item: -item.score)


def local_suggestions(ranked: list[PriorityItem], limit: int = 5) -> list[Suggestion]:
    return [
        Suggestion(building_type=item.building_type, reason=item.reason, priority=item.score, cost=item.cost)
        for item in ranked[:limit]
    ]


def merge_advisory_suggestions(
    ranked: list[PriorityItem],
    advisory: AdvisoryResult,
    limit: int = 5,
) -> list[Suggestion]:
    """Advisory picks that are also local candidates lead, then local candidates fill up."""
    by_type = {item.building_type: item for item in ranked}
    suggestions: list[Suggestion] = []
    for index, building_type in enumerate(advisory.priorities):
        item = by_type.get(building_type)
        if item is None or any(s.building_type == building_type for s in suggestions):
            continue
        suggestions.append(
            Suggestion(
                building_type=building_type,
                reason=f"Advisory: {advisory.analysis}",
                priority=100 - index * 10,
                cost=item.cost,
                source="advisory",
                advisory_detail=advisory.suggestions,
            )
        )

    for item in ranked:
        if len(suggestions) >= limit:
            break
        if any(s.building_type == item.building_type for s in suggestions):
            continue
        suggestions.append(
            Suggestion(building_type=item.building_type, reason=item.reason, priority=item.score, cost=item.cost)
        )
    return suggestions[:limit]
