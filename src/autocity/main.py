"""CLI startup entrypoint for AutoCity."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

import typer
from rich import print

from autocity.cli import CliSimulationHandler
from autocity.config import settings
from autocity.models import CityState
from autocity.simulation import CitySimulation
from autocity.telemetry import RecordingNotificationSink, configure_logging

app = typer.Typer(help="AutoCity simulation entrypoint")


@app.callback()
def _setup(log_level: str = typer.Option(None, help="Override AUTOCITY_LOG_LEVEL")) -> None:
    configure_logging(log_level or settings.log_level)


def _load_city(city_file: str | None) -> CityState:
    if not city_file:
        return CityState()
    path = Path(city_file).expanduser()
    if not path.exists():
        raise typer.BadParameter(f"City snapshot not found: {path}", param_hint="--city-file")
    return CityState.from_dict(json.loads(path.read_text(encoding="utf-8")))


def _build_simulation(city_file: str | None = None, use_advisory: bool | None = None) -> CitySimulation:
    simulation = CitySimulation.from_settings(settings, city=_load_city(city_file))
    if use_advisory is not None:
        simulation.planner.config.use_advisory = use_advisory
    return simulation


@app.command()
def start() -> None:
    """Show runtime configuration."""
    print(
        {
            "app_name": settings.app_name,
            "economy_tick_seconds": settings.economy_tick_seconds,
            "planner_cycle_interval_seconds": settings.planner_cycle_interval_seconds,
            "planner_budget_reserve": settings.planner_budget_reserve,
            "planner_max_actions_per_cycle": settings.planner_max_actions_per_cycle,
            "advisory_enabled": settings.advisory_enabled,
            "advisory_configured": bool(settings.advisory_api_key),
            "advisory_model": settings.advisory_model,
        }
    )


@app.command()
def simulate(
    seconds: float = typer.Option(120.0, help="Virtual seconds to simulate"),
    automation: bool = typer.Option(True, help="Let the planner build autonomously"),
    advisory: bool = typer.Option(False, help="Consult the external advisory during planning"),
    starter_road: bool = typer.Option(True, help="Lay a road at the origin when the city is empty"),
    city_file: str = typer.Option(None, help="JSON city snapshot to start from"),
    output: str = typer.Option(None, help="Write the final city snapshot to this JSON file"),
) -> None:
    """Run the economy and planner on a virtual clock."""
    simulation = _build_simulation(city_file, use_advisory=advisory)
    simulation.planner.config.pacing_delay_seconds = 0
    if starter_road and not simulation.city.structures:
        simulation.place_structure("road", 0, 0)
    if automation:
        simulation.set_automation_enabled(True)

    handler = CliSimulationHandler(simulation)
    handler.simulate(seconds)
    print({"summary": handler.summary()})

    if output:
        target = Path(output).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(simulation.city.to_dict(), indent=2), encoding="utf-8")
        print({"saved": str(target)})


@app.command()
def suggest(
    limit: int = typer.Option(5, help="How many suggestions to show"),
    advisory: bool = typer.Option(False, help="Merge in the external advisory's picks"),
    city_file: str = typer.Option(None, help="JSON city snapshot to analyse"),
) -> None:
    """Preview ranked build suggestions without spending anything."""
    simulation = _build_simulation(city_file, use_advisory=advisory)
    handler = CliSimulationHandler(simulation)
    print({"suggestions": [asdict(item) for item in handler.suggestions(limit=limit, use_advisory=advisory)]})


@app.command("advisory-check")
def advisory_check() -> None:
    """Test the connection to the configured advisory endpoint."""
    simulation = CitySimulation.from_settings(settings, notifications=RecordingNotificationSink())
    check = CliSimulationHandler(simulation).check_advisory()
    print({"succeeded": check.succeeded, "detail": check.detail})
    if not check.succeeded:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
