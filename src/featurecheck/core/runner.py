"""Dependency-aware feature test runner.

``run_test`` always resolves: unknown ids, unmet dependencies, raising bodies,
falsy returns and timeouts all become result records instead of exceptions.

``run_all`` awaits tests strictly one after another in topological order of
their declared dependencies (ties broken by registration order), so each
dependency check sees the committed result of every earlier test.  Do not
parallelize it without re-deriving the skip semantics.
"""
from __future__ import annotations

import asyncio
import heapq
import logging
import time
from collections.abc import Iterable
from dataclasses import replace

from featurecheck.core.callables import bind_test_body
from featurecheck.core.constants import (
    AREA_PERFORMANCE,
    DEFAULT_TEST_TIMEOUT_SECONDS,
    RETURNED_FALSE_MESSAGE,
    TIMEOUT_ERROR_MESSAGE,
)
from featurecheck.core.debug_logger import DebugLogger
from featurecheck.core.errors import ExecutionError, NotFoundError, ValidationError
from featurecheck.core.models import (
    AsyncTestBody,
    FeatureTest,
    FeatureTestResult,
    LogLevel,
    RunStatus,
    RunSummary,
    utc_now,
)
from featurecheck.core.stores.logs import BoundedLogStore
from featurecheck.core.tracing import ExecutionTracer

logger = logging.getLogger(__name__)


def validate_feature_test(test: FeatureTest) -> FeatureTest:
    for field_name in ("id", "name", "area"):
        value = getattr(test, field_name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Feature test requires non-empty string field `{field_name}`")
    if not isinstance(test.description, str):
        raise ValidationError(f"Feature test `{test.id}` description must be a string")
    if not callable(test.test):
        raise ValidationError(f"Feature test `{test.id}` requires a callable `test` body")
    dependencies = test.dependencies
    if isinstance(dependencies, str) or not isinstance(dependencies, Iterable):
        raise ValidationError(f"Feature test `{test.id}` dependencies must be a list of test ids")
    normalized = tuple(dependencies)
    if not all(isinstance(dep, str) and dep for dep in normalized):
        raise ValidationError(f"Feature test `{test.id}` dependencies must be non-empty strings")
    if test.id in normalized:
        raise ValidationError(f"Feature test `{test.id}` cannot depend on itself")
    if test.feature_name is not None and not isinstance(test.feature_name, str):
        raise ValidationError(f"Feature test `{test.id}` feature_name must be a string")
    return replace(test, dependencies=tuple(dict.fromkeys(normalized)))


class FeatureTestRunner:
    def __init__(
        self,
        store: BoundedLogStore,
        debug_logger: DebugLogger,
        tracer: ExecutionTracer,
        timeout_seconds: float | None = DEFAULT_TEST_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._logger = debug_logger
        self._tracer = tracer
        self._timeout_seconds = timeout_seconds
        # dict insertion order doubles as registration order.
        self._tests: dict[str, FeatureTest] = {}
        self._bodies: dict[str, AsyncTestBody] = {}
        self._results: dict[str, FeatureTestResult] = {}

    @property
    def timeout_seconds(self) -> float | None:
        return self._timeout_seconds

    # Registry

    def register(self, test: FeatureTest) -> FeatureTest:
        test = validate_feature_test(test)
        if test.id in self._tests:
            self._logger.warn(AREA_PERFORMANCE, f"Replacing existing feature test: {test.id}")
        self._tests[test.id] = test
        self._bodies[test.id] = bind_test_body(test.test)
        return test

    def unregister(self, test_id: str) -> FeatureTest:
        if test_id not in self._tests:
            raise NotFoundError(f'Test with ID "{test_id}" not found in registry')
        self._bodies.pop(test_id, None)
        return self._tests.pop(test_id)

    def get_test(self, test_id: str) -> FeatureTest:
        test = self._tests.get(test_id)
        if test is None:
            raise NotFoundError(f'Test with ID "{test_id}" not found in registry')
        return test

    def get_registered_tests(self) -> list[FeatureTest]:
        return list(self._tests.values())

    def __len__(self) -> int:
        return len(self._tests)

    def __contains__(self, test_id: object) -> bool:
        return test_id in self._tests

    # Results

    def get_results(self) -> dict[str, FeatureTestResult]:
        return dict(self._results)

    def get_result(self, test_id: str) -> FeatureTestResult | None:
        return self._results.get(test_id)

    def reset_results(self) -> None:
        self._results.clear()
        self._store.clear_feature_test_results()

    def restore_results(self, results: dict[str, FeatureTestResult]) -> None:
        self._results.update(results)

    def replace_results(self, results: dict[str, FeatureTestResult]) -> None:
        """Drop every in-memory result, then adopt ``results``."""
        self._results = dict(results)

    def _record(self, result: FeatureTestResult) -> FeatureTestResult:
        self._results[result.id] = result
        if result.status is not RunStatus.RUNNING:
            self._store.update_feature_test_result(result)
        return result

    # Execution

    def unmet_dependencies(self, test: FeatureTest) -> list[str]:
        unmet: list[str] = []
        for dep_id in test.dependencies:
            dep_result = self._results.get(dep_id)
            if dep_result is None or dep_result.status is not RunStatus.PASSED:
                unmet.append(dep_id)
        return unmet

    async def run_test(self, test_id: str) -> FeatureTestResult:
        test = self._tests.get(test_id)
        if test is None:
            self._logger.error(AREA_PERFORMANCE, f"Feature test not found: {test_id}")
            return self._record(
                FeatureTestResult(
                    id=test_id,
                    name="Unknown Test",
                    description="Test not found in registry",
                    status=RunStatus.FAILED,
                    error=f'Test with ID "{test_id}" not found in registry',
                )
            )

        unmet = self.unmet_dependencies(test)
        if unmet:
            self._logger.warn(AREA_PERFORMANCE, f"Skipping feature test {test_id}", {"unmet": unmet})
            return self._record(
                FeatureTestResult(
                    id=test.id,
                    name=test.name,
                    description=test.description,
                    status=RunStatus.SKIPPED,
                    error=f"Dependencies not met: {', '.join(unmet)}",
                )
            )

        context = self._tracer.create_context(test.feature_name or test.area, test.id)
        running = self._record(
            FeatureTestResult(
                id=test.id,
                name=test.name,
                description=test.description,
                status=RunStatus.RUNNING,
                context_id=context.id,
            )
        )
        self._tracer.log_step(context.id, f"Starting test execution: {test.id}")

        started = time.perf_counter()
        error: ExecutionError | None = None
        try:
            passed = await asyncio.wait_for(self._bodies[test.id](context.id), timeout=self._timeout_seconds)
        except TimeoutError:
            error = ExecutionError(TIMEOUT_ERROR_MESSAGE, details={"timeout_seconds": self._timeout_seconds})
        except Exception as exc:
            error = ExecutionError.from_exception(exc)
        else:
            if not passed:
                error = ExecutionError(RETURNED_FALSE_MESSAGE)
        duration = (time.perf_counter() - started) * 1000

        if error is None:
            self._tracer.log_step(context.id, f"Completed test execution: {test.id}")
            self._tracer.complete_context(context.id, True, {"duration": duration})
            status = RunStatus.PASSED
        else:
            self._tracer.log_step(
                context.id,
                f"Test execution failed: {test.id}",
                LogLevel.ERROR,
                data=error.to_dict(),
            )
            self._tracer.complete_context(context.id, False, {"error": error.message, "duration": duration})
            status = RunStatus.FAILED

        return self._record(
            replace(
                running,
                status=status,
                error=error.message if error is not None else None,
                duration=duration,
                timestamp=utc_now(),
            )
        )

    def execution_order(self) -> list[str]:
        """Registered test ids, dependencies first, registration order on ties."""
        position = {test_id: idx for idx, test_id in enumerate(self._tests)}
        indegree = dict.fromkeys(self._tests, 0)
        dependents: dict[str, list[str]] = {test_id: [] for test_id in self._tests}
        for test in self._tests.values():
            for dep_id in test.dependencies:
                # Unregistered dependencies impose no ordering; they surface as skips.
                if dep_id in self._tests:
                    indegree[test.id] += 1
                    dependents[dep_id].append(test.id)

        ready = [(position[test_id], test_id) for test_id, degree in indegree.items() if degree == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            _, test_id = heapq.heappop(ready)
            order.append(test_id)
            for dependent in dependents[test_id]:
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    heapq.heappush(ready, (position[dependent], dependent))

        if len(order) < len(self._tests):
            scheduled = set(order)
            cyclic = [test_id for test_id in self._tests if test_id not in scheduled]
            logger.warning("Dependency cycle among feature tests: %s", ", ".join(cyclic))
            order.extend(cyclic)
        return order

    async def run_all(self) -> RunSummary:
        started = time.perf_counter()
        summary = RunSummary()
        for test_id in self.execution_order():
            summary.results.append(await self.run_test(test_id))
        summary.duration_ms = (time.perf_counter() - started) * 1000
        self._logger.info(
            AREA_PERFORMANCE,
            f"Feature tests complete: {summary.passed} passed, {summary.failed} failed, {summary.skipped} skipped",
            {"total": summary.total, "durationMs": summary.duration_ms},
        )
        return summary


__all__ = ["FeatureTestRunner", "validate_feature_test"]
