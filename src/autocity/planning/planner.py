"""Autonomous construction planner: analyze, consult, rank, place, execute."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from autocity.advisory import AdvisoryClient, OfflineAdvisoryClient, fallback_analysis
from autocity.catalog import BuildingCatalog
from autocity.economy import StatisticsEngine
from autocity.models import (
    AdvisoryResult,
    AutomationStatus,
    BuildAction,
    CityAnalysis,
    CityState,
    ConnectionCheck,
    Plan,
    PlannerConfig,
    PlanRecord,
    Structure,
    Suggestion,
)
from autocity.placement import PlacementPredicate, can_place
from autocity.telemetry import (
    ADVISORY_UNAVAILABLE,
    PLAN_COMPLETED,
    STRUCTURE_PLACED,
    LoggingNotificationSink,
    NotificationSink,
    Severity,
    Telemetry,
)

from .history import InMemoryPlanHistory, PlanHistoryStore
from .location import LocationSearch
from .needs import development_stage, evaluate_needs
from .scorer import PriorityScorer, local_suggestions, merge_advisory_suggestions


class _NullTelemetry:
    def emit(self, event_name: str, payload: dict) -> None:
        return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AutoPlanner:
    """Single-flight planning cycle over a shared :class:`CityState`.

    Only one cycle runs at a time; timer callbacks that arrive while a cycle is
    in flight are dropped. Advisory failures and rejected placements never
    abort a cycle.
    """

    def __init__(
        self,
        city: CityState,
        catalog: BuildingCatalog,
        *,
        config: PlannerConfig | None = None,
        statistics: StatisticsEngine | None = None,
        advisory: AdvisoryClient | None = None,
        notifications: NotificationSink | None = None,
        telemetry: Telemetry | None = None,
        history: PlanHistoryStore | None = None,
        placement: PlacementPredicate = can_place,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._city = city
        self._catalog = catalog
        self.config = config or PlannerConfig()
        self._statistics = statistics or StatisticsEngine(catalog)
        self._advisory = advisory or OfflineAdvisoryClient()
        self._notifications = notifications or LoggingNotificationSink()
        self._telemetry = telemetry or _NullTelemetry()
        self._history = history if history is not None else InMemoryPlanHistory()
        self._placement = placement
        self._sleep = sleep
        self._clock = clock
        self._logger = logger or logging.getLogger("autocity.planner")

        self._scorer = PriorityScorer(catalog)
        self._locations = LocationSearch(catalog, self._statistics, placement=placement)
        self._is_planning = False
        self.last_advisory: AdvisoryResult | None = None

    @property
    def is_planning(self) -> bool:
        return self._is_planning

    @property
    def history(self) -> PlanHistoryStore:
        return self._history

    def set_enabled(self, enabled: bool) -> None:
        self.config.enabled = enabled
        if enabled:
            self._notifications.notify("Automatic city planning enabled", Severity.SUCCESS)
        else:
            self._notifications.notify("Automatic city planning disabled", Severity.INFO)
        self._logger.info("planner_toggled", extra={"enabled": enabled})

    def status(self) -> AutomationStatus:
        return AutomationStatus(
            enabled=self.config.enabled,
            is_planning=self._is_planning,
            use_advisory=self.config.use_advisory,
            total_plans=len(self._history),
            last_plan=self._history.last(),
            last_advisory=self.last_advisory,
        )

    def on_timer(self) -> Awaitable[PlanRecord | None] | None:
        """Scheduler callback: start a cycle unless disabled or one is already running."""
        if not self.config.enabled or self._is_planning:
            return None
        return self.run_cycle()

    def analyze(self) -> CityAnalysis:
        """Snapshot the city; does not touch money or any other resource."""
        return self._analyze(self._city)

    def _analyze(self, city: CityState) -> CityAnalysis:
        statistics = self._statistics.compute(city)
        resources = city.resources
        total_buildings = len(city.structures)
        return CityAnalysis(
            population=resources.population,
            money=resources.money,
            happiness=resources.happiness,
            power_balance=statistics.power_balance,
            net_income=statistics.net_income,
            building_counts=dict(statistics.building_counts),
            needs=evaluate_needs(resources, statistics),
            development_stage=development_stage(resources.population, total_buildings),
            available_budget=max(0, resources.money - self.config.budget_reserve),
            total_buildings=total_buildings,
            category_weights=dict(self.config.category_weights),
        )

    async def consult_advisory(self, analysis: CityAnalysis) -> AdvisoryResult | None:
        """Return a successful advisory result, or ``None`` after storing a local fallback."""
        timeout = self.config.advisory_timeout_seconds
        try:
            result = await asyncio.wait_for(self._advisory.analyze(analysis), timeout=timeout)
        except asyncio.TimeoutError:
            self._logger.warning("advisory_timeout", extra={"timeout_seconds": timeout})
            result = fallback_analysis(analysis)
        except Exception:  # noqa: BLE001 - advisory failures must not escape the cycle.
            self._logger.exception("advisory_failed")
            result = fallback_analysis(analysis)

        if not isinstance(result, AdvisoryResult):
            self._logger.warning("advisory_malformed", extra={"result_type": type(result).__name__})
            result = fallback_analysis(analysis)

        self.last_advisory = result
        if not result.succeeded:
            self._telemetry.emit(ADVISORY_UNAVAILABLE, {"fallback": result.analysis})
            return None
        return result

    def generate_build_plan(
        self,
        analysis: CityAnalysis,
        advisory: AdvisoryResult | None = None,
        *,
        max_actions: int | None = None,
    ) -> Plan:
        """Build a budget-bounded plan from the ranked candidates.

        Each pass walks the ranking once, in order. Accepted actions are
        projected onto a working copy of the city so later searches see their
        footprints. Before the next pass, candidates whose gate no longer holds
        on the projected city are dropped; the ranking never gains new types.
        Passes stop at the action limit or when a whole pass adds nothing.
        """
        ranked = self._scorer.rank(analysis, advisory)
        if max_actions is None:
            max_actions = self.config.max_actions_per_cycle
        working = self._city.copy()
        remaining = analysis.available_budget
        actions: list[BuildAction] = []

        while len(actions) < max_actions:
            added = False
            for item in ranked:
                if len(actions) >= max_actions:
                    break
                if remaining < item.cost:
                    continue
                location = self._locations.find_best_location(item.building_type, working)
                if location is None:
                    continue

                actions.append(
                    BuildAction(
                        building_type=item.building_type,
                        x=location.x,
                        y=location.y,
                        cost=item.cost,
                        priority_score=item.score,
                        rationale=item.reason,
                        advisory_rationale=item.advisory_reason,
                        location_score=location.score,
                    )
                )
                remaining -= item.cost
                working.structures.append(Structure(type=item.building_type, x=location.x, y=location.y))
                working.resources.money -= item.cost
                added = True
            if not added:
                break
            projected = self._analyze(working)
            ranked = [item for item in ranked if self._scorer.gate_holds(item.building_type, projected)]

        return Plan(
            actions=tuple(actions),
            total_cost=sum(action.cost for action in actions),
            analysis=analysis,
            advisory=advisory,
            created_at=self._clock(),
        )

    async def execute_plan(self, plan: Plan, *, pacing_delay: float | None = None) -> PlanRecord:
        if pacing_delay is None:
            pacing_delay = self.config.pacing_delay_seconds
        placed: list[str] = []
        skipped: list[tuple[str, str]] = []
        for action in plan.actions:
            structure, reason = self._build(action)
            if structure is None:
                skipped.append((action.building_type, reason))
                self._logger.info(
                    "build_action_skipped",
                    extra={"building_type": action.building_type, "x": action.x, "y": action.y, "reason": reason},
                )
                continue

            placed.append(structure.id)
            definition = self._catalog.get(action.building_type)
            name = definition.name if definition else action.building_type
            self._notifications.notify(f"Auto-built {name} ({action.rationale})", Severity.SUCCESS)
            self._telemetry.emit(
                STRUCTURE_PLACED,
                {"id": structure.id, "type": structure.type, "x": structure.x, "y": structure.y, "automated": True},
            )
            await self._sleep(pacing_delay)

        return PlanRecord(plan=plan, placed=tuple(placed), skipped=tuple(skipped), completed_at=self._clock())

    async def run_cycle(self) -> PlanRecord | None:
        """Run one planning cycle; returns ``None`` when another cycle is in progress."""
        if self._is_planning:
            self._logger.info("planning_cycle_skipped")
            return None

        self._is_planning = True
        try:
            # Config is fixed for the whole cycle, even if changed during the advisory call.
            max_actions = self.config.max_actions_per_cycle
            pacing_delay = self.config.pacing_delay_seconds
            use_advisory = self.config.use_advisory

            analysis = self.analyze()
            advisory = None
            if use_advisory:
                advisory = await self.consult_advisory(analysis)

            plan = self.generate_build_plan(analysis, advisory, max_actions=max_actions)
            record = await self.execute_plan(plan, pacing_delay=pacing_delay)
            self._history.append(record)
            self._telemetry.emit(
                PLAN_COMPLETED,
                {
                    "actions": len(plan.actions),
                    "placed": len(record.placed),
                    "skipped": len(record.skipped),
                    "total_cost": plan.total_cost,
                    "advisory": advisory is not None,
                },
            )
            self._logger.info(
                "planning_cycle_completed",
                extra={"placed": len(record.placed), "skipped": len(record.skipped), "total_cost": plan.total_cost},
            )
            return record
        except Exception:  # noqa: BLE001 - a failed cycle must never leave the guard set.
            self._logger.exception("planning_cycle_failed")
            return None
        finally:
            self._is_planning = False

    def suggestions(self, limit: int = 5) -> list[Suggestion]:
        """Local ranked preview; spends nothing and mutates nothing."""
        return local_suggestions(self._scorer.rank(self.analyze()), limit=limit)

    async def fetch_suggestions(self, limit: int = 5) -> list[Suggestion]:
        analysis = self.analyze()
        ranked = self._scorer.rank(analysis)
        if self.config.use_advisory:
            advisory = await self.consult_advisory(analysis)
            if advisory is not None:
                return merge_advisory_suggestions(ranked, advisory, limit=limit)
        return local_suggestions(ranked, limit=limit)

    async def check_advisory_connection(self) -> ConnectionCheck:
        try:
            check = await asyncio.wait_for(
                self._advisory.test_connection(), timeout=self.config.advisory_timeout_seconds
            )
        except asyncio.TimeoutError:
            check = ConnectionCheck(succeeded=False, detail="advisory connection timed out")
        except Exception as exc:  # noqa: BLE001
            check = ConnectionCheck(succeeded=False, detail=f"{type(exc).__name__}: {exc}")

        if check.succeeded:
            self._notifications.notify("Planning advisory connected", Severity.SUCCESS)
        else:
            self._notifications.notify("Planning advisory unavailable; using local planner", Severity.WARNING)
        self._logger.info("advisory_connection_checked", extra={"succeeded": check.succeeded})
        return check

    def _build(self, action: BuildAction) -> tuple[Structure | None, str]:
        definition = self._catalog.get(action.building_type)
        if definition is None:
            return None, "unknown building type"

        resources = self._city.resources
        if resources.money < definition.cost:
            return None, "insufficient funds"

        check = self._placement(self._catalog, action.building_type, action.x, action.y, self._city)
        if not check.can_place:
            return None, check.reason or "placement rejected"

        structure = Structure(
            type=action.building_type,
            x=action.x,
            y=action.y,
            created_at=self._clock(),
            built_by_automation=True,
            automation_rationale=action.advisory_rationale or action.rationale,
        )
        resources.money -= definition.cost
        self._city.structures.append(structure)
        return structure, ""
