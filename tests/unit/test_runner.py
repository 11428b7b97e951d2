from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import pytest

from featurecheck.core.debug_logger import DebugLogger
from featurecheck.core.errors import ValidationError
from featurecheck.core.models import FeatureTest, RunStatus
from featurecheck.core.runner import FeatureTestRunner
from featurecheck.core.stores import BoundedLogStore
from featurecheck.core.tracing import ExecutionTracer


def _runner(timeout_seconds: float | None = 5.0) -> tuple[FeatureTestRunner, BoundedLogStore, ExecutionTracer]:
    store = BoundedLogStore()
    debug_logger = DebugLogger(store)
    tracer = ExecutionTracer(debug_logger)
    return FeatureTestRunner(store, debug_logger, tracer, timeout_seconds=timeout_seconds), store, tracer


def _test(
    test_id: str,
    body: Callable[[str], Any],
    dependencies: tuple[str, ...] = (),
    area: str = "goal",
) -> FeatureTest:
    return FeatureTest(
        id=test_id,
        name=f"{test_id} check",
        description=f"Checks {test_id}",
        area=area,
        test=body,
        dependencies=dependencies,
    )


def test_passing_test_records_duration_and_context() -> None:
    runner, store, tracer = _runner()
    seen: list[str] = []

    async def _body(context_id: str) -> bool:
        seen.append(context_id)
        return True

    runner.register(_test("t1", _body))
    result = asyncio.run(runner.run_test("t1"))

    assert result.status is RunStatus.PASSED
    assert result.error is None
    assert result.duration is not None and result.duration >= 0
    assert seen == [result.context_id]
    assert tracer.get_context(result.context_id).status.value == "success"
    assert store.get_feature_test_result("t1").status is RunStatus.PASSED


def test_unmet_dependency_skips_without_running_body() -> None:
    runner, _, _ = _runner()
    calls = {"t2": 0}

    def _dependent(_: str) -> bool:
        calls["t2"] += 1
        return True

    runner.register(_test("t1", lambda _: False))
    runner.register(_test("t2", _dependent, dependencies=("t1",)))

    result = asyncio.run(runner.run_test("t2"))

    assert result.status is RunStatus.SKIPPED
    assert "t1" in (result.error or "")
    assert result.error == "Dependencies not met: t1"
    assert calls["t2"] == 0


def test_raising_body_fails_with_message() -> None:
    runner, _, tracer = _runner()

    def _body(_: str) -> bool:
        raise RuntimeError("boom")

    runner.register(_test("t3", _body))
    result = asyncio.run(runner.run_test("t3"))

    assert result.status is RunStatus.FAILED
    assert result.error == "boom"
    assert tracer.get_context(result.context_id).status.value == "failure"


def test_falsy_return_fails() -> None:
    runner, _, _ = _runner()
    runner.register(_test("t4", lambda _: False))

    result = asyncio.run(runner.run_test("t4"))

    assert result.status is RunStatus.FAILED
    assert result.error == "Test returned false"


def test_unknown_test_id_resolves_to_failed_result() -> None:
    runner, _, _ = _runner()

    result = asyncio.run(runner.run_test("nope"))

    assert result.status is RunStatus.FAILED
    assert result.error == 'Test with ID "nope" not found in registry'


def test_slow_body_times_out() -> None:
    runner, _, _ = _runner(timeout_seconds=0.01)

    async def _slow(_: str) -> bool:
        await asyncio.sleep(1)
        return True

    runner.register(_test("slow", _slow))
    result = asyncio.run(runner.run_test("slow"))

    assert result.status is RunStatus.FAILED
    assert result.error == "timeout"


def test_reregistration_replaces_instead_of_duplicating() -> None:
    runner, _, _ = _runner()
    runner.register(_test("t1", lambda _: False))
    runner.register(_test("t1", lambda _: True))

    assert len(runner) == 1
    assert asyncio.run(runner.run_test("t1")).status is RunStatus.PASSED


@pytest.mark.parametrize(
    "test",
    [
        FeatureTest(id="", name="n", description="d", area="goal", test=lambda _: True),
        FeatureTest(id="x", name="n", description="d", area="goal", test="not callable"),  # type: ignore[arg-type]
        FeatureTest(id="x", name="n", description="d", area="goal", test=lambda _: True, dependencies=("x",)),
        FeatureTest(id="x", name="n", description="d", area="goal", test=lambda _: True, dependencies="y"),  # type: ignore[arg-type]
    ],
)
def test_invalid_registrations_are_rejected(test: FeatureTest) -> None:
    runner, _, _ = _runner()
    with pytest.raises(ValidationError):
        runner.register(test)


def test_run_all_orders_dependencies_first() -> None:
    runner, _, _ = _runner()
    order: list[str] = []

    def _record(test_id: str) -> Callable[[str], bool]:
        def _body(_: str) -> bool:
            order.append(test_id)
            return True

        return _body

    runner.register(_test("c", _record("c"), dependencies=("b",)))
    runner.register(_test("b", _record("b"), dependencies=("a",)))
    runner.register(_test("a", _record("a")))
    runner.register(_test("d", _record("d")))

    summary = asyncio.run(runner.run_all())

    assert runner.execution_order() == ["a", "b", "c", "d"]
    assert order == ["a", "b", "c", "d"]
    assert summary.ok is True
    assert summary.passed == 4


def test_run_all_propagates_skips_through_the_chain() -> None:
    runner, _, _ = _runner()

    def _fail(_: str) -> bool:
        raise ValueError("bad data")

    runner.register(_test("base", _fail))
    runner.register(_test("child", lambda _: True, dependencies=("base",)))
    runner.register(_test("grandchild", lambda _: True, dependencies=("child",)))
    runner.register(_test("independent", lambda _: True))

    summary = asyncio.run(runner.run_all())

    statuses = {result.id: result.status for result in summary.results}
    assert statuses == {
        "base": RunStatus.FAILED,
        "child": RunStatus.SKIPPED,
        "grandchild": RunStatus.SKIPPED,
        "independent": RunStatus.PASSED,
    }
    assert (summary.passed, summary.failed, summary.skipped) == (1, 1, 2)
    assert summary.ok is False


def test_dependency_cycles_are_skipped_not_hung() -> None:
    runner, _, _ = _runner()
    runner.register(_test("x", lambda _: True, dependencies=("y",)))
    runner.register(_test("y", lambda _: True, dependencies=("x",)))
    runner.register(_test("z", lambda _: True))

    summary = asyncio.run(runner.run_all())

    assert runner.execution_order() == ["z", "x", "y"]
    assert {result.id: result.status for result in summary.results} == {
        "z": RunStatus.PASSED,
        "x": RunStatus.SKIPPED,
        "y": RunStatus.SKIPPED,
    }


def test_unregistered_dependency_surfaces_as_skip() -> None:
    runner, _, _ = _runner()
    runner.register(_test("lonely", lambda _: True, dependencies=("ghost",)))

    summary = asyncio.run(runner.run_all())

    assert summary.results[0].status is RunStatus.SKIPPED
    assert summary.results[0].error == "Dependencies not met: ghost"


def test_reset_results_clears_runner_and_store() -> None:
    runner, store, _ = _runner()
    runner.register(_test("t1", lambda _: True))
    asyncio.run(runner.run_test("t1"))

    runner.reset_results()

    assert runner.get_results() == {}
    assert store.get_feature_test_results() == {}


def test_zero_argument_bodies_run_without_context_id() -> None:
    runner, _, _ = _runner()

    async def _async_check() -> bool:
        return True

    runner.register(_test("sync", lambda: True))
    runner.register(_test("async", _async_check))

    assert asyncio.run(runner.run_test("sync")).status is RunStatus.PASSED
    assert asyncio.run(runner.run_test("async")).status is RunStatus.PASSED


def test_slow_sync_body_times_out() -> None:
    runner, _, _ = _runner(timeout_seconds=0.05)

    def _blocking(_: str) -> bool:
        time.sleep(0.3)
        return True

    runner.register(_test("blocking", _blocking))
    result = asyncio.run(runner.run_test("blocking"))

    assert result.status is RunStatus.FAILED
    assert result.error == "timeout"


def test_empty_description_is_accepted() -> None:
    runner, _, _ = _runner()

    registered = runner.register(FeatureTest(id="bare", name="Bare", description="", area="goal", test=lambda: True))

    assert registered.description == ""
    with pytest.raises(ValidationError):
        runner.register(FeatureTest(id="bad", name="Bad", description=None, area="goal", test=lambda: True))  # type: ignore[arg-type]


def test_replace_results_drops_stale_results() -> None:
    runner, _, _ = _runner()
    runner.register(_test("t1", lambda _: True))
    runner.register(_test("t2", lambda _: True, dependencies=("t1",)))
    assert asyncio.run(runner.run_test("t1")).status is RunStatus.PASSED

    runner.replace_results({})

    assert runner.get_result("t1") is None
    assert asyncio.run(runner.run_test("t2")).status is RunStatus.SKIPPED
