"""Execution contexts: correlation ids for tracing one operation end to end.

A context moves from ``running`` to ``success`` or ``failure`` exactly once.
Every step logged against it carries its id, so the log store can be sliced
per operation afterwards.  Tracing never raises on a bad context id when
logging; it degrades to a standalone warning instead.
"""
from __future__ import annotations

import json
import random
import string
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from featurecheck.core.callables import ensure_async
from featurecheck.core.constants import AREA_API, AREA_PERFORMANCE, TRACE_BODY_LIMIT
from featurecheck.core.debug_logger import DebugLogger
from featurecheck.core.diff import find_differences
from featurecheck.core.errors import NotFoundError
from featurecheck.core.models import ContextStatus, ExecutionContext, LogEntry, LogLevel

T = TypeVar("T")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def _truncated_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)[:TRACE_BODY_LIMIT]


class ExecutionTracer:
    def __init__(
        self,
        debug_logger: DebugLogger,
        clock: Callable[[], float] = time.perf_counter,
        rng: random.Random | None = None,
    ) -> None:
        self._logger = debug_logger
        self._clock = clock
        self._rng = rng or random.Random()
        self._contexts: dict[str, ExecutionContext] = {}
        self._context_logs: dict[str, list[LogEntry]] = {}

    def _new_id(self) -> str:
        while True:
            suffix = "".join(self._rng.choices(_ID_ALPHABET, k=7))
            context_id = f"ctx_{int(time.time() * 1000)}_{suffix}"
            if context_id not in self._contexts:
                return context_id

    def create_context(self, feature: str | None = None, test_id: str | None = None) -> ExecutionContext:
        context = ExecutionContext(
            id=self._new_id(),
            start_time=self._clock(),
            feature=feature,
            test_id=test_id,
        )
        self._contexts[context.id] = context
        self._context_logs[context.id] = []
        self._logger.debug(
            AREA_PERFORMANCE,
            f"Created execution context: {context.id}",
            {"feature": feature, "testId": test_id},
            context_id=context.id,
        )
        return context

    def get_context(self, context_id: str) -> ExecutionContext:
        context = self._contexts.get(context_id)
        if context is None:
            raise NotFoundError(f"Unknown execution context: {context_id}")
        return context

    def complete_context(
        self,
        context_id: str,
        success: bool,
        data: dict[str, Any] | None = None,
    ) -> ExecutionContext:
        context = self.get_context(context_id)
        if context.completed:
            return context

        context.end_time = self._clock()
        context.status = ContextStatus.SUCCESS if success else ContextStatus.FAILURE
        if data:
            context.data.update(data)

        self._logger.info(
            AREA_PERFORMANCE,
            f"Completed execution context: {context_id}",
            {
                "feature": context.feature,
                "testId": context.test_id,
                "duration": f"{context.duration_ms or 0.0:.2f}ms",
                "status": context.status.value,
                "data": context.data,
            },
            context_id=context_id,
        )
        return context

    def log_step(
        self,
        context_id: str,
        message: str,
        level: LogLevel = LogLevel.INFO,
        area: str = AREA_PERFORMANCE,
        data: Any = None,
    ) -> LogEntry | None:
        context = self._contexts.get(context_id)
        if context is None:
            self._logger.warn(area, f"Logging to unknown context: {context_id}. {message}", data)
            return None
        if context.completed:
            self._logger.warn(area, f"Logging to completed context: {context_id}. {message}", data, context_id=context_id)
            return None

        entry = LogEntry(level=level, area=area, message=message, data=data, context_id=context_id)
        self._context_logs[context_id].append(entry)
        self._logger.log(level, area, f"[Context: {context_id}] {message}", data, context_id=context_id)
        return entry

    def log_api_request(
        self,
        context_id: str,
        method: str,
        url: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> LogEntry | None:
        return self.log_step(
            context_id,
            f"API Request: {method} {url}",
            LogLevel.DEBUG,
            AREA_API,
            {
                "method": method,
                "url": url,
                "body": _truncated_json(body),
                "headers": _truncated_json(headers),
            },
        )

    def log_api_response(
        self,
        context_id: str,
        status: int,
        url: str,
        data: Any = None,
        duration: float | None = None,
    ) -> LogEntry | None:
        return self.log_step(
            context_id,
            f"API Response: {status} for {url}",
            LogLevel.ERROR if status >= 400 else LogLevel.DEBUG,
            AREA_API,
            {
                "status": status,
                "url": url,
                "data": _truncated_json(data),
                "duration": duration,
            },
        )

    def log_test_input(self, context_id: str, input_data: Any) -> LogEntry | None:
        return self.log_step(context_id, "Test input data", LogLevel.DEBUG, AREA_PERFORMANCE, {"input": input_data})

    def log_test_output(
        self,
        context_id: str,
        expected: Any,
        actual: Any,
        is_equal: bool | None = None,
    ) -> LogEntry | None:
        if is_equal is None:
            is_equal = expected == actual
        if is_equal:
            return self.log_step(
                context_id,
                "Test output matches expected result",
                LogLevel.INFO,
                AREA_PERFORMANCE,
                {"expected": expected, "actual": actual},
            )
        return self.log_step(
            context_id,
            "Test output does not match expected result",
            LogLevel.WARN,
            AREA_PERFORMANCE,
            {"expected": expected, "actual": actual, "differences": find_differences(expected, actual)},
        )

    def get_contexts_by_feature(self, feature: str) -> list[ExecutionContext]:
        return [context for context in self._contexts.values() if context.feature == feature]

    def get_logs_by_context(self, context_id: str) -> list[LogEntry]:
        return list(self._context_logs.get(context_id, []))

    def executor(self, feature: str, test_id: str) -> Callable[[Callable[[], T] | Callable[[], Awaitable[T]]], Awaitable[T]]:
        """Build a runner that wraps a callable in its own traced context."""

        async def execute(fn: Callable[[], T] | Callable[[], Awaitable[T]]) -> T:
            context = self.create_context(feature, test_id)
            self.log_step(context.id, f"Starting test execution: {test_id}")
            try:
                result = await ensure_async(fn)()
            except Exception as exc:
                message = str(exc) or type(exc).__name__
                self.log_step(context.id, f"Test execution failed: {test_id}", LogLevel.ERROR, data={"error": message})
                self.complete_context(context.id, False, {"error": message})
                raise
            self.log_step(context.id, f"Completed test execution: {test_id}")
            self.complete_context(context.id, True, {"result": result})
            return result

        return execute


__all__ = ["ExecutionTracer"]
