from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from autocity.advisory import fallback_analysis
from autocity.catalog import default_catalog
from autocity.models import AdvisoryResult, CityState, ConnectionCheck, PlannerConfig, PlanRecord, Structure
from autocity.planning import AutoPlanner, InMemoryPlanHistory
from autocity.telemetry import (
    ADVISORY_UNAVAILABLE,
    PLAN_COMPLETED,
    STRUCTURE_PLACED,
    RecordingNotificationSink,
    RecordingTelemetry,
    Severity,
)

FIXED_NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


async def _no_sleep(seconds: float) -> None:
    return None


class FailingAdvisory:
    def __init__(self) -> None:
        self.calls = 0

    async def test_connection(self) -> ConnectionCheck:
        raise RuntimeError("boom")

    async def analyze(self, analysis):
        self.calls += 1
        raise RuntimeError("boom")


class SlowAdvisory:
    async def test_connection(self) -> ConnectionCheck:
        await asyncio.sleep(1)
        return ConnectionCheck(succeeded=True, detail="late")

    async def analyze(self, analysis):
        await asyncio.sleep(1)
        return AdvisoryResult(succeeded=True, analysis="late", priorities=["park"])


class GatedAdvisory:
    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.calls = 0

    async def test_connection(self) -> ConnectionCheck:
        return ConnectionCheck(succeeded=True, detail="ok")

    async def analyze(self, analysis):
        self.calls += 1
        await self.release.wait()
        return fallback_analysis(analysis)


class StaticAdvisory:
    def __init__(self, result) -> None:
        self.result = result

    async def test_connection(self) -> ConnectionCheck:
        return ConnectionCheck(succeeded=True, detail="hello")

    async def analyze(self, analysis):
        return self.result


class BrokenHistory:
    def append(self, record: PlanRecord) -> None:
        raise RuntimeError("disk full")

    def list_recent(self, limit: int) -> list[PlanRecord]:
        return []

    def last(self) -> PlanRecord | None:
        return None

    def __len__(self) -> int:
        return 0


def _housing_city(money: float = 10_000) -> CityState:
    """Road at the origin, a distant power plant and ten residents with nowhere to live."""
    city = CityState(structures=[Structure("road", 0, 0), Structure("power", 20, 20)])
    city.resources.money = money
    city.resources.population = 10
    city.resources.happiness = 70
    return city


def _config(**overrides) -> PlannerConfig:
    values = {"enabled": True, "use_advisory": False, "pacing_delay_seconds": 0}
    values.update(overrides)
    return PlannerConfig(**values)


def _planner(city: CityState, config: PlannerConfig | None = None, **kwargs) -> AutoPlanner:
    return AutoPlanner(
        city,
        default_catalog(),
        config=config or _config(),
        sleep=_no_sleep,
        clock=lambda: FIXED_NOW,
        **kwargs,
    )


def test_analyze_reports_budget_and_stage_without_spending() -> None:
    city = _housing_city()
    analysis = _planner(city).analyze()

    assert analysis.available_budget == 9_000
    assert analysis.power_balance == 50
    assert analysis.development_stage.value == "early"
    assert analysis.count("road") == 1
    assert city.resources.money == 10_000


def test_plan_fills_action_limit_with_housing() -> None:
    city = _housing_city()
    planner = _planner(city)

    plan = planner.generate_build_plan(planner.analyze())

    assert [action.building_type for action in plan.actions] == ["residential"] * 3
    assert [(action.x, action.y) for action in plan.actions] == [(-3, -3), (-3, -2), (-3, -1)]
    assert plan.total_cost == 300
    assert plan.actions[0].rationale == "grow population"
    assert len(city.structures) == 2
    assert city.resources.money == 10_000


def test_cycle_spends_plan_cost_and_records_history() -> None:
    city = _housing_city()
    telemetry = RecordingTelemetry()
    planner = _planner(city, telemetry=telemetry)

    record = asyncio.run(planner.run_cycle())

    assert record is not None
    assert len(record.placed) == 3
    assert record.skipped == ()
    assert city.resources.money == 9_700
    assert planner.analyze().available_budget == 8_700
    assert len(planner.history) == 1
    assert planner.history.last() is record
    assert all(s.built_by_automation for s in city.structures if s.type == "residential")
    assert telemetry.names() == [STRUCTURE_PLACED, STRUCTURE_PLACED, STRUCTURE_PLACED, PLAN_COMPLETED]


def test_plan_respects_available_budget() -> None:
    planner = _planner(_housing_city(money=1_250))

    plan = planner.generate_build_plan(planner.analyze())

    assert len(plan.actions) == 2
    assert plan.total_cost == 200


def test_reserve_blocks_all_spending_but_cycle_is_still_recorded() -> None:
    city = _housing_city(money=1_050)
    planner = _planner(city)

    record = asyncio.run(planner.run_cycle())

    assert record is not None
    assert record.plan.actions == ()
    assert city.resources.money == 1_050
    assert len(planner.history) == 1


def test_satisfied_gate_drops_out_of_later_passes() -> None:
    city = CityState(structures=[Structure("road", 0, 0)])
    city.resources.happiness = 70
    planner = _planner(city)

    plan = planner.generate_build_plan(planner.analyze())

    assert [action.building_type for action in plan.actions] == ["power"]


def test_failed_advisory_plans_like_local_only() -> None:
    advisory = FailingAdvisory()
    telemetry = RecordingTelemetry()
    with_advisory = _planner(
        _housing_city(), _config(use_advisory=True), advisory=advisory, telemetry=telemetry
    )
    local_only = _planner(_housing_city())

    consulted = asyncio.run(with_advisory.run_cycle())
    local = asyncio.run(local_only.run_cycle())

    assert advisory.calls == 1
    assert consulted.plan == local.plan
    assert ADVISORY_UNAVAILABLE in telemetry.names()
    assert with_advisory.last_advisory is not None
    assert with_advisory.last_advisory.succeeded is False


def test_advisory_timeout_falls_back() -> None:
    planner = _planner(
        _housing_city(),
        _config(use_advisory=True, advisory_timeout_seconds=0.01),
        advisory=SlowAdvisory(),
    )

    record = asyncio.run(planner.run_cycle())

    assert record is not None
    assert record.plan.advisory is None
    assert len(record.placed) == 3
    assert planner.last_advisory.raw_response == "local analysis"


def test_malformed_advisory_result_falls_back() -> None:
    planner = _planner(_housing_city(), _config(use_advisory=True), advisory=StaticAdvisory("not a result"))

    record = asyncio.run(planner.run_cycle())

    assert record.plan.advisory is None
    assert planner.last_advisory.succeeded is False


def test_successful_advisory_boosts_its_picks() -> None:
    result = AdvisoryResult(
        succeeded=True,
        analysis="housing is short",
        priorities=["residential"],
        suggestions="build houses",
    )
    planner = _planner(_housing_city(), _config(use_advisory=True), advisory=StaticAdvisory(result))

    record = asyncio.run(planner.run_cycle())

    first = record.plan.actions[0]
    assert record.plan.advisory is result
    assert first.priority_score == 185
    assert first.advisory_rationale == "Advisory: build houses"


def test_only_one_cycle_runs_at_a_time() -> None:
    async def _run():
        advisory = GatedAdvisory()
        planner = _planner(
            _housing_city(),
            _config(use_advisory=True, advisory_timeout_seconds=5),
            advisory=advisory,
        )
        first = asyncio.create_task(planner.run_cycle())
        await asyncio.sleep(0)
        in_flight = planner.is_planning
        second = await planner.run_cycle()
        timer = planner.on_timer()
        advisory.release.set()
        record = await first
        return in_flight, second, timer, record, advisory.calls, len(planner.history), planner.is_planning

    in_flight, second, timer, record, calls, history_size, still_planning = asyncio.run(_run())

    assert in_flight is True
    assert second is None
    assert timer is None
    assert record is not None
    assert calls == 1
    assert history_size == 1
    assert still_planning is False


def test_failed_cycle_releases_the_guard() -> None:
    planner = _planner(_housing_city(), history=BrokenHistory())

    record = asyncio.run(planner.run_cycle())

    assert record is None
    assert planner.is_planning is False


def test_disabled_planner_ignores_timer() -> None:
    planner = _planner(_housing_city(), _config(enabled=False))

    assert planner.on_timer() is None


def test_execution_revalidates_each_action() -> None:
    city = _housing_city()
    planner = _planner(city)
    plan = planner.generate_build_plan(planner.analyze())
    blocker = plan.actions[0]
    city.structures.append(Structure("road", blocker.x, blocker.y))

    record = asyncio.run(planner.execute_plan(plan))

    assert record.skipped == (("residential", "location occupied"),)
    assert len(record.placed) == 2
    assert city.resources.money == 9_800


def test_pacing_delay_runs_after_each_placement() -> None:
    delays: list[float] = []

    async def _record_sleep(seconds: float) -> None:
        delays.append(seconds)

    planner = AutoPlanner(
        _housing_city(),
        default_catalog(),
        config=_config(pacing_delay_seconds=0.5),
        sleep=_record_sleep,
        clock=lambda: FIXED_NOW,
    )

    asyncio.run(planner.run_cycle())

    assert delays == [0.5, 0.5, 0.5]


def test_toggle_notifies_and_status_reflects_history() -> None:
    notifications = RecordingNotificationSink()
    planner = _planner(_housing_city(), _config(enabled=False), notifications=notifications)

    planner.set_enabled(True)
    asyncio.run(planner.run_cycle())
    status = planner.status()

    assert notifications.messages[0] == ("Automatic city planning enabled", Severity.SUCCESS)
    assert status.enabled is True
    assert status.is_planning is False
    assert status.total_plans == 1
    assert status.last_plan is planner.history.last()


def test_suggestions_preview_spends_nothing() -> None:
    city = _housing_city()
    planner = _planner(city)

    suggestions = planner.suggestions()

    assert [s.building_type for s in suggestions] == ["residential"]
    assert suggestions[0].source == "local"
    assert city.resources.money == 10_000
    assert len(city.structures) == 2


def test_fetch_suggestions_merges_advisory_picks() -> None:
    result = AdvisoryResult(succeeded=True, analysis="housing is short", priorities=["residential"])
    planner = _planner(_housing_city(), _config(use_advisory=True), advisory=StaticAdvisory(result))

    suggestions = asyncio.run(planner.fetch_suggestions())

    assert suggestions[0].building_type == "residential"
    assert suggestions[0].source == "advisory"
    assert suggestions[0].priority == 100


def test_check_advisory_connection_reports_outcome() -> None:
    notifications = RecordingNotificationSink()
    healthy = _planner(_housing_city(), advisory=StaticAdvisory(None), notifications=notifications)
    broken = _planner(_housing_city(), advisory=FailingAdvisory(), notifications=notifications)

    ok = asyncio.run(healthy.check_advisory_connection())
    failed = asyncio.run(broken.check_advisory_connection())

    assert ok.succeeded is True
    assert ok.detail == "hello"
    assert failed.succeeded is False
    assert "RuntimeError" in failed.detail
    assert [severity for _, severity in notifications.messages] == [Severity.SUCCESS, Severity.WARNING]


def test_injected_history_store_receives_records() -> None:
    store = InMemoryPlanHistory()
    planner = _planner(_housing_city(), history=store)

    record = asyncio.run(planner.run_cycle())

    assert planner.history is store
    assert len(store) == 1
    assert store.last() is record


class ReconfiguringAdvisory:
    """Changes the planner config while the advisory call is suspended."""

    def __init__(self) -> None:
        self.planner: AutoPlanner | None = None

    async def test_connection(self) -> ConnectionCheck:
        return ConnectionCheck(succeeded=True, detail="ok")

    async def analyze(self, analysis):
        self.planner.config.max_actions_per_cycle = 1
        self.planner.config.pacing_delay_seconds = 5
        return fallback_analysis(analysis)


def test_config_is_read_once_at_cycle_start() -> None:
    delays: list[float] = []

    async def _record_sleep(seconds: float) -> None:
        delays.append(seconds)

    advisory = ReconfiguringAdvisory()
    planner = AutoPlanner(
        _housing_city(),
        default_catalog(),
        config=_config(use_advisory=True),
        advisory=advisory,
        sleep=_record_sleep,
        clock=lambda: FIXED_NOW,
    )
    advisory.planner = planner

    record = asyncio.run(planner.run_cycle())

    assert len(record.placed) == 3
    assert delays == [0, 0, 0]
    assert planner.config.max_actions_per_cycle == 1
