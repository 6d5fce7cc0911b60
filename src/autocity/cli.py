"""CLI-side handler wrappers around the async simulation."""

from __future__ import annotations

import asyncio
from collections import Counter

from autocity.models import ConnectionCheck, Suggestion
from autocity.scheduler import ManualScheduler
from autocity.simulation import CitySimulation


class CliSimulationHandler:
    """Simple sync-friendly facade over the async simulation."""

    def __init__(self, simulation: CitySimulation) -> None:
        self._simulation = simulation

    def simulate(self, seconds: float, step_seconds: float = 1.0) -> ManualScheduler:
        """Run the city for ``seconds`` of virtual time and return the scheduler used."""
        scheduler = ManualScheduler()

        async def _run() -> None:
            self._simulation.start(scheduler)
            elapsed = 0.0
            while elapsed < seconds:
                step = min(step_seconds, seconds - elapsed)
                await scheduler.advance(step)
                elapsed += step
            self._simulation.stop(scheduler)

        asyncio.run(_run())
        return scheduler

    def suggestions(self, limit: int = 5, use_advisory: bool = False) -> list[Suggestion]:
        if use_advisory:
            return asyncio.run(self._simulation.fetch_suggestions(limit=limit))
        return self._simulation.get_suggestions(limit=limit)

    def check_advisory(self) -> ConnectionCheck:
        return asyncio.run(self._simulation.planner.check_advisory_connection())

    def summary(self) -> dict:
        city = self._simulation.city
        resources = city.resources
        status = self._simulation.get_automation_status()
        return {
            "money": resources.money,
            "population": resources.population,
            "happiness": resources.happiness,
            "power": f"{resources.power_used:g}/{resources.power_capacity:g}",
            "structures": dict(Counter(structure.type for structure in city.structures)),
            "automated_structures": sum(1 for structure in city.structures if structure.built_by_automation),
            "plans": status.total_plans,
        }
