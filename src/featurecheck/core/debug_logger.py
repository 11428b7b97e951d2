"""Structured in-app logger with feature verification and timing helpers.

Every accepted record lands in the :class:`BoundedLogStore`; when ``echo`` is
enabled it is mirrored to the stdlib ``featurecheck.debug`` logger as
``[LEVEL] [area] message``.  Records below ``min_level`` or outside
``enabled_areas`` are dropped before either sink sees them.
"""
from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from featurecheck.core.callables import ensure_async
from featurecheck.core.constants import AREA_PERFORMANCE, AREA_UI
from featurecheck.core.models import FeatureVerification, LogEntry, LogLevel, PerformanceMetric, utc_now
from featurecheck.core.stores.logs import BoundedLogStore

T = TypeVar("T")

echo_logger = logging.getLogger("featurecheck.debug")

_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass(slots=True)
class LoggerSettings:
    min_level: LogLevel = LogLevel.DEBUG
    enabled_areas: frozenset[str] | None = None
    echo: bool = False
    enable_feature_verification: bool = True
    enable_performance_metrics: bool = True

    def accepts(self, level: LogLevel, area: str) -> bool:
        if level < self.min_level:
            return False
        return self.enabled_areas is None or area in self.enabled_areas


class DebugLogger:
    def __init__(self, store: BoundedLogStore, settings: LoggerSettings | None = None) -> None:
        self._store = store
        self._defaults = settings or LoggerSettings()
        self._settings = replace(self._defaults)
        self._features: dict[str, FeatureVerification] = {}
        self._metrics: dict[str, PerformanceMetric] = {}
        self._metric_seq = itertools.count(1)

    @property
    def store(self) -> BoundedLogStore:
        return self._store

    @property
    def settings(self) -> LoggerSettings:
        return self._settings

    def configure(
        self,
        *,
        min_level: LogLevel | int | str | None = None,
        enabled_areas: Iterable[str] | None = None,
        echo: bool | None = None,
        enable_feature_verification: bool | None = None,
        enable_performance_metrics: bool | None = None,
    ) -> None:
        if min_level is not None:
            self._settings.min_level = LogLevel.parse(min_level)
        if enabled_areas is not None:
            self._settings.enabled_areas = frozenset(enabled_areas)
        if echo is not None:
            self._settings.echo = echo
        if enable_feature_verification is not None:
            self._settings.enable_feature_verification = enable_feature_verification
        if enable_performance_metrics is not None:
            self._settings.enable_performance_metrics = enable_performance_metrics

    def reset(self) -> None:
        self._settings = replace(self._defaults)

    # Logging

    def log(
        self,
        level: LogLevel,
        area: str,
        message: str,
        data: Any = None,
        context_id: str | None = None,
    ) -> LogEntry | None:
        if not self._settings.accepts(level, area):
            return None
        entry = self._store.add_log(level, area, message, data=data, context_id=context_id)
        if self._settings.echo:
            suffix = f" {data!r}" if data is not None else ""
            echo_logger.log(_STDLIB_LEVELS[level], "[%s] [%s] %s%s", level.name, area, message, suffix)
        return entry

    def debug(self, area: str, message: str, data: Any = None, context_id: str | None = None) -> LogEntry | None:
        return self.log(LogLevel.DEBUG, area, message, data, context_id)

    def info(self, area: str, message: str, data: Any = None, context_id: str | None = None) -> LogEntry | None:
        return self.log(LogLevel.INFO, area, message, data, context_id)

    def warn(self, area: str, message: str, data: Any = None, context_id: str | None = None) -> LogEntry | None:
        return self.log(LogLevel.WARN, area, message, data, context_id)

    def error(self, area: str, message: str, data: Any = None, context_id: str | None = None) -> LogEntry | None:
        return self.log(LogLevel.ERROR, area, message, data, context_id)

    # Feature verification

    def register_feature(
        self,
        name: str,
        implemented: bool = False,
        tested: bool = False,
        notes: str = "",
        area: str | None = None,
    ) -> None:
        if not self._settings.enable_feature_verification:
            return
        feature = self._features.get(name)
        if feature is None:
            self._features[name] = FeatureVerification(
                name=name,
                implemented=implemented,
                tested=tested,
                notes=[notes] if notes else [],
                area=area,
            )
        else:
            feature.implemented = feature.implemented or implemented
            feature.tested = feature.tested or tested
            if notes:
                feature.notes.append(notes)
            if area is not None:
                feature.area = area
        self.info(AREA_UI, f"Feature registered: {name}", {"implemented": implemented, "tested": tested})

    def mark_feature_implemented(self, name: str, notes: str = "") -> None:
        if not self._settings.enable_feature_verification:
            return
        if name not in self._features:
            self.register_feature(name, implemented=True, notes=notes)
            self._features[name].last_verified = utc_now()
            return
        feature = self._features[name]
        feature.implemented = True
        feature.last_verified = utc_now()
        if notes:
            feature.notes.append(notes)
        self.info(AREA_UI, f"Feature implemented: {name}")

    def mark_feature_tested(self, name: str, passed: bool = True, notes: str = "") -> None:
        if not self._settings.enable_feature_verification:
            return
        if name not in self._features:
            self.register_feature(name, tested=passed, notes=notes)
            self._features[name].last_verified = utc_now()
            return
        feature = self._features[name]
        feature.tested = passed
        feature.last_verified = utc_now()
        if notes:
            feature.notes.append(f"Test {'PASSED' if passed else 'FAILED'}: {notes}")
        if passed:
            self.info(AREA_UI, f"Feature test passed: {name}")
        else:
            self.warn(AREA_UI, f"Feature test failed: {name}", {"notes": notes})

    def get_feature(self, name: str) -> FeatureVerification | None:
        feature = self._features.get(name)
        return replace(feature, notes=list(feature.notes)) if feature is not None else None

    def get_feature_verification_status(self) -> dict[str, FeatureVerification]:
        return {name: replace(feature, notes=list(feature.notes)) for name, feature in self._features.items()}

    # Performance measurement

    def start_measurement(self, operation: str, area: str) -> str | None:
        if not self._settings.enable_performance_metrics:
            return None
        metric_id = f"{area}-{operation}-{next(self._metric_seq)}"
        self._metrics[metric_id] = PerformanceMetric(operation=operation, area=area, start_time=time.perf_counter())
        self.debug(AREA_PERFORMANCE, f"Started measuring: {operation}", {"id": metric_id, "area": area})
        return metric_id

    def end_measurement(self, metric_id: str | None) -> PerformanceMetric | None:
        if not self._settings.enable_performance_metrics or not metric_id:
            return None
        metric = self._metrics.pop(metric_id, None)
        if metric is None:
            self.warn(AREA_PERFORMANCE, f"No active measurement found for id: {metric_id}")
            return None
        metric.end_time = time.perf_counter()
        self.info(
            AREA_PERFORMANCE,
            f"Completed measuring: {metric.operation}",
            {"duration": f"{metric.duration_ms:.2f}ms", "area": metric.area},
        )
        return metric

    async def measure(
        self,
        operation: str,
        area: str,
        fn: Callable[[], T] | Callable[[], Awaitable[T]],
    ) -> T:
        metric_id = self.start_measurement(operation, area)
        try:
            return await ensure_async(fn)()
        finally:
            self.end_measurement(metric_id)


__all__ = ["DebugLogger", "LoggerSettings"]
