from __future__ import annotations

import asyncio

from featurecheck.core.constants import OTHER_FEATURES
from featurecheck.core.debug_logger import DebugLogger
from featurecheck.core.mapping import FeatureTestMapper, normalize_name
from featurecheck.core.models import FeatureTest, LogLevel, RunStatus
from featurecheck.core.runner import FeatureTestRunner
from featurecheck.core.stores import BoundedLogStore
from featurecheck.core.tracing import ExecutionTracer


class _Harness:
    def __init__(self) -> None:
        self.store = BoundedLogStore()
        self.debug_logger = DebugLogger(self.store)
        self.runner = FeatureTestRunner(self.store, self.debug_logger, ExecutionTracer(self.debug_logger))
        self.mapper = FeatureTestMapper(self.runner, self.debug_logger)

    def feature(self, name: str, area: str | None = None) -> None:
        self.debug_logger.register_feature(name, area=area)

    def test(
        self,
        test_id: str,
        name: str,
        area: str = "ui",
        feature_name: str | None = None,
        passes: bool = True,
    ) -> None:
        self.runner.register(
            FeatureTest(
                id=test_id,
                name=name,
                description="",
                area=area,
                test=lambda _: passes,
                feature_name=feature_name,
            )
        )


def test_normalize_name() -> None:
    assert normalize_name("Dashboard Stats-Test!") == "dashboardstatstest"
    assert normalize_name(None) == ""


def test_explicit_feature_name_wins_over_curated_table() -> None:
    harness = _Harness()
    harness.test("dashboard-ui", "Dashboard UI", feature_name="goal-creation")
    harness.test("custom-check", "Custom", feature_name="unregistered-feature")
    harness.mapper.refresh_mapping()

    assert harness.mapper.get_feature_for_test("dashboard-ui") == "goal-creation"
    assert harness.mapper.forward["unregistered-feature"] == ["custom-check"]


def test_curated_table_maps_known_ids() -> None:
    harness = _Harness()
    harness.test("dashboard-ui", "Renders cards")
    harness.mapper.refresh_mapping()

    assert harness.mapper.get_feature_for_test("dashboard-ui") == "Dashboard"


def test_structural_area_match() -> None:
    harness = _Harness()
    harness.feature("settings-profile", area="settings")
    harness.test("prefs-check", "Preferences", area="settings")
    harness.mapper.refresh_mapping()

    assert harness.mapper.get_feature_for_test("prefs-check") == "settings-profile"


def test_fuzzy_name_tier_maps_dashboard_stats_test() -> None:
    harness = _Harness()
    harness.feature("dashboard-stats")
    harness.test("stats-widget", "Dashboard Stats Test", area="ui")
    harness.mapper.refresh_mapping()

    assert harness.mapper.get_feature_for_test("stats-widget") == "dashboard-stats"
    assert harness.mapper.forward["dashboard-stats"] == ["stats-widget"]


def test_fallback_area_retry_then_other_features() -> None:
    harness = _Harness()
    harness.feature("Goal Settings", area="Goal")
    harness.test("qqq", "zzz", area="goal")
    harness.test("orphan", "Unrelated", area="misc")
    harness.mapper.refresh_mapping()

    assert harness.mapper.get_feature_for_test("qqq") == "Goal Settings"
    assert harness.mapper.get_feature_for_test("orphan") == OTHER_FEATURES


def test_every_test_maps_to_exactly_one_feature() -> None:
    harness = _Harness()
    harness.feature("dashboard-stats")
    harness.feature("settings-profile", area="settings")
    harness.test("dashboard-ui", "Dashboard UI")
    harness.test("stats-widget", "Dashboard Stats Test")
    harness.test("prefs-check", "Preferences", area="settings")
    harness.test("orphan", "Unrelated", area="misc")
    harness.mapper.refresh_mapping()

    forward = harness.mapper.forward
    reverse = harness.mapper.reverse
    assert sorted(reverse) == ["dashboard-ui", "orphan", "prefs-check", "stats-widget"]
    assert sum(len(test_ids) for test_ids in forward.values()) == 4
    for test_id, feature_name in reverse.items():
        assert test_id in forward[feature_name]


def test_refresh_is_deterministic() -> None:
    harness = _Harness()
    harness.feature("dashboard-stats")
    harness.test("stats-widget", "Dashboard Stats Test")
    harness.test("orphan", "Unrelated", area="misc")

    harness.mapper.refresh_mapping()
    first = (harness.mapper.forward, harness.mapper.reverse)
    harness.mapper.refresh_mapping()

    assert (harness.mapper.forward, harness.mapper.reverse) == first


def test_registered_features_without_tests_have_empty_entries() -> None:
    harness = _Harness()
    harness.feature("goal-creation")
    harness.mapper.refresh_mapping()

    assert harness.mapper.forward["goal-creation"] == []
    assert harness.mapper.get_tests_for_feature("goal-creation") == []


def test_feature_test_infos_carry_latest_results() -> None:
    harness = _Harness()
    harness.feature("dashboard-stats")
    harness.test("stats-widget", "Dashboard Stats Test")
    harness.mapper.refresh_mapping()

    before = harness.mapper.get_tests_for_feature("dashboard-stats")
    assert [info.status for info in before] == [RunStatus.NOT_STARTED]

    asyncio.run(harness.runner.run_test("stats-widget"))
    after = harness.mapper.get_tests_for_feature("dashboard-stats")
    assert after[0].status is RunStatus.PASSED
    assert after[0].last_run is not None
    assert after[0].feature_name == "dashboard-stats"


def test_update_feature_test_status_marks_passing_features_tested() -> None:
    harness = _Harness()
    harness.feature("dashboard-stats")
    harness.feature("goal-creation")
    harness.test("stats-widget", "Dashboard Stats Test")
    harness.test("goal-form", "Goal creation form", passes=False)
    harness.mapper.refresh_mapping()
    asyncio.run(harness.runner.run_all())

    harness.mapper.update_feature_test_status(["stats-widget", "goal-form"])

    assert harness.debug_logger.get_feature("dashboard-stats").tested is True
    assert harness.debug_logger.get_feature("goal-creation").tested is False


def test_listeners_are_isolated_from_each_other() -> None:
    harness = _Harness()
    calls: list[str] = []

    def _broken() -> None:
        raise RuntimeError("listener exploded")

    harness.mapper.subscribe(_broken)
    unsubscribe = harness.mapper.subscribe(lambda: calls.append("ok"))

    harness.mapper.refresh_mapping()
    assert calls == ["ok"]
    errors = harness.store.get_logs(level=LogLevel.ERROR)
    assert errors[0].message == "Error in feature test service listener"
    assert errors[0].data == {"error": "listener exploded"}

    unsubscribe()
    harness.mapper.unsubscribe(_broken)
    harness.mapper.refresh_mapping()
    assert calls == ["ok"]
