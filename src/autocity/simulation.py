"""Host-facing facade tying the economy tick and the planner to one city."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from .advisory import AdvisoryClient, ChatCompletionsAdvisoryClient, OfflineAdvisoryClient
from .catalog import BuildingCatalog, default_catalog
from .economy import StatisticsEngine
from .models import AutomationStatus, CityState, PlannerConfig, PlanRecord, Statistics, Structure, Suggestion
from .placement import can_place
from .planning import AutoPlanner
from .scheduler import Scheduler
from .telemetry import (
    STRUCTURE_PLACED,
    TICK_COMPLETED,
    EventBus,
    LoggingNotificationSink,
    NotificationSink,
    Severity,
)

ECONOMY_JOB = "economy-tick"
PLANNING_JOB = "planning-cycle"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CitySimulation:
    def __init__(
        self,
        city: CityState | None = None,
        catalog: BuildingCatalog | None = None,
        *,
        planner_config: PlannerConfig | None = None,
        advisory: AdvisoryClient | None = None,
        notifications: NotificationSink | None = None,
        events: EventBus | None = None,
        economy_tick_seconds: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else default_catalog()
        self.city = city or CityState()
        self.events = events or EventBus()
        self.notifications = notifications or LoggingNotificationSink()
        self.economy_tick_seconds = economy_tick_seconds
        self.statistics_engine = StatisticsEngine(self.catalog)
        self.planner = AutoPlanner(
            self.city,
            self.catalog,
            config=planner_config,
            statistics=self.statistics_engine,
            advisory=advisory,
            notifications=self.notifications,
            telemetry=self.events,
            sleep=sleep,
            clock=clock,
        )
        self._clock = clock
        self._logger = logger or logging.getLogger("autocity.simulation")
        self.last_statistics: Statistics | None = None

    @classmethod
    def from_settings(cls, settings: Any, city: CityState | None = None, **kwargs: Any) -> CitySimulation:
        advisory: AdvisoryClient
        if settings.advisory_enabled:
            advisory = ChatCompletionsAdvisoryClient(
                base_url=settings.advisory_base_url,
                api_key=settings.advisory_api_key,
                model=settings.advisory_model,
                timeout_seconds=settings.advisory_timeout_seconds,
                max_tokens=settings.advisory_max_tokens,
                temperature=settings.advisory_temperature,
            )
        else:
            advisory = OfflineAdvisoryClient()
        kwargs.setdefault("advisory", advisory)
        return cls(
            city,
            planner_config=PlannerConfig.from_settings(settings),
            economy_tick_seconds=settings.economy_tick_seconds,
            **kwargs,
        )

    def tick(self) -> Statistics:
        """Advance the economy one step and return the fresh statistics."""
        statistics = self.statistics_engine.recompute(self.city)
        self.last_statistics = statistics
        resources = self.city.resources
        self.events.emit(
            TICK_COMPLETED,
            {
                "money": resources.money,
                "population": resources.population,
                "happiness": resources.happiness,
                "net_income": statistics.net_income,
            },
        )
        return statistics

    def place_structure(self, building_type: str, x: int, y: int) -> Structure | None:
        """Manual placement: validate, charge, append; rejections are notified, not raised."""
        definition = self.catalog.get(building_type)
        check = can_place(self.catalog, building_type, x, y, self.city)
        if definition is None or not check.can_place:
            self.notifications.notify(check.reason or "cannot place here", Severity.ERROR)
            return None

        structure = Structure(type=building_type, x=x, y=y, created_at=self._clock())
        self.city.resources.money -= definition.cost
        self.city.structures.append(structure)
        self.notifications.notify(f"{definition.name} built", Severity.SUCCESS)
        self.events.emit(
            STRUCTURE_PLACED,
            {"id": structure.id, "type": building_type, "x": x, "y": y, "automated": False},
        )
        return structure

    def set_automation_enabled(self, enabled: bool) -> None:
        self.planner.set_enabled(enabled)

    def get_automation_status(self) -> AutomationStatus:
        return self.planner.status()

    def get_suggestions(self, limit: int = 5) -> list[Suggestion]:
        return self.planner.suggestions(limit=limit)

    async def fetch_suggestions(self, limit: int = 5) -> list[Suggestion]:
        return await self.planner.fetch_suggestions(limit=limit)

    async def run_planning_cycle(self) -> PlanRecord | None:
        return await self.planner.run_cycle()

    def start(self, scheduler: Scheduler) -> None:
        """Register the economy tick and the planning timer."""
        scheduler.every(ECONOMY_JOB, self.economy_tick_seconds, self.tick)
        scheduler.every(PLANNING_JOB, self.planner.config.cycle_interval_seconds, self.planner.on_timer)
        self._logger.info(
            "simulation_started",
            extra={
                "economy_tick_seconds": self.economy_tick_seconds,
                "planning_interval_seconds": self.planner.config.cycle_interval_seconds,
            },
        )

    def stop(self, scheduler: Scheduler) -> None:
        scheduler.cancel(ECONOMY_JOB)
        scheduler.cancel(PLANNING_JOB)
        self._logger.info("simulation_stopped")
