"""One object owning the whole debug core.

:class:`DebugService` wires the log store, debug logger, tracer, runner,
mapper and API tester together and exposes the surface an HTTP bridge or the
CLI talks to.  No state lives outside an instance.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from featurecheck.config import FeatureCheckConfig
from featurecheck.core.api_tester import ApiEndpointTester
from featurecheck.core.constants import AREA_UI, DEFAULT_FEATURES
from featurecheck.core.debug_logger import DebugLogger, LoggerSettings
from featurecheck.core.errors import NotFoundError
from featurecheck.core.mapping import FeatureTestMapper
from featurecheck.core.models import (
    EnhancedFeatureStatus,
    FeatureTest,
    FeatureTestInfo,
    FeatureTestResult,
    FeatureVerification,
    LogEntry,
    LogLevel,
    RunStatus,
    RunSummary,
    utc_now,
)
from featurecheck.core.query import DebugQuery, QueryKind, parse_query
from featurecheck.core.report import render_test_report
from featurecheck.core.runner import FeatureTestRunner
from featurecheck.core.status import enhance_feature_status
from featurecheck.core.stores import BoundedLogStore, JsonFileBackend, StoreBackend
from featurecheck.core.stores.logs import DateBound
from featurecheck.core.tracing import ExecutionTracer

logger = logging.getLogger(__name__)

RECENT_FEATURE_LOG_LIMIT = 20


def feature_recommendations(status: EnhancedFeatureStatus, tested: bool, tests: list[FeatureTestInfo]) -> list[str]:
    recommendations: list[str] = []
    if not status.implemented:
        recommendations.append(f"Implement the {status.name} feature")
    elif not tested:
        recommendations.append(f"Add tests for the {status.name} feature")

    failed = [test for test in tests if test.status is RunStatus.FAILED]
    if failed:
        recommendations.append(f"Fix {len(failed)} failing tests for {status.name}")
        for test in failed:
            if test.error:
                recommendations.append(f'Fix test "{test.name}": {test.error}')
    return recommendations


class DebugService:
    def __init__(
        self,
        config: FeatureCheckConfig | None = None,
        *,
        backend: StoreBackend | None = None,
    ) -> None:
        self.config = config or FeatureCheckConfig()
        if backend is None and self.config.state_path is not None:
            backend = JsonFileBackend(self.config.state_path)

        self.store = BoundedLogStore(
            log_capacity=self.config.log_capacity,
            api_result_capacity=self.config.api_result_capacity,
            backend=backend,
        )
        if self.store.load():
            logger.debug("Loaded debug storage from backend")

        self.debug_logger = DebugLogger(
            self.store,
            LoggerSettings(
                min_level=self.config.min_level,
                enabled_areas=frozenset(self.config.enabled_areas) if self.config.enabled_areas is not None else None,
                echo=self.config.echo,
                enable_feature_verification=self.config.enable_feature_verification,
                enable_performance_metrics=self.config.enable_performance_metrics,
            ),
        )
        self.tracer = ExecutionTracer(self.debug_logger)
        self.runner = FeatureTestRunner(
            self.store,
            self.debug_logger,
            self.tracer,
            timeout_seconds=self.config.test_timeout_seconds,
        )
        self.runner.restore_results(self.store.get_feature_test_results())

        if self.config.register_default_features:
            for name in DEFAULT_FEATURES:
                self.debug_logger.register_feature(name)
        for declaration in self.config.features:
            self.debug_logger.register_feature(
                declaration.name,
                implemented=declaration.implemented,
                tested=declaration.tested,
                notes=declaration.notes,
                area=declaration.area,
            )

        self.mapper = FeatureTestMapper(self.runner, self.debug_logger)
        self.api_tester = ApiEndpointTester(
            self.store,
            self.debug_logger,
            base_url=self.config.api_base_url,
            tracer=self.tracer,
        )

    # Registration

    def register_feature_test(self, test: FeatureTest) -> FeatureTest:
        registered = self.runner.register(test)
        self.mapper.refresh_mapping()
        return registered

    def register_feature(
        self,
        name: str,
        implemented: bool = False,
        tested: bool = False,
        notes: str = "",
        area: str | None = None,
    ) -> None:
        self.debug_logger.register_feature(name, implemented=implemented, tested=tested, notes=notes, area=area)
        self.mapper.refresh_mapping()

    def mark_feature_implemented(self, name: str, notes: str = "") -> None:
        self.debug_logger.mark_feature_implemented(name, notes)
        self.mapper.refresh_mapping()

    def mark_feature_tested(self, name: str, passed: bool = True, notes: str = "") -> None:
        self.debug_logger.mark_feature_tested(name, passed, notes)
        self.mapper.refresh_mapping()

    # Queries

    def get_test_results(self) -> dict[str, FeatureTestResult]:
        return self.runner.get_results()

    def get_feature_tests(self) -> list[FeatureTestInfo]:
        return self.mapper.get_feature_tests()

    def get_tests_for_feature(self, name: str) -> list[FeatureTestInfo]:
        return self.mapper.get_tests_for_feature(name)

    def _known_features(self) -> dict[str, FeatureVerification]:
        """Registered features first, then names only the mapping knows about."""
        features = self.debug_logger.get_feature_verification_status()
        for name, test_ids in self.mapper.forward.items():
            if name not in features and test_ids:
                features[name] = FeatureVerification(name=name)
        return features

    def _resolve_feature_name(self, name: str) -> str:
        features = self._known_features()
        if name in features:
            return name
        lowered = name.lower()
        for candidate in features:
            if candidate.lower() == lowered:
                return candidate
        raise NotFoundError(f"Feature not found: {name}", details={"feature": name})

    def get_enhanced_features(self) -> list[EnhancedFeatureStatus]:
        return [
            enhance_feature_status(feature, self.mapper.get_tests_for_feature(name))
            for name, feature in self._known_features().items()
        ]

    def get_enhanced_feature(self, name: str) -> EnhancedFeatureStatus:
        resolved = self._resolve_feature_name(name)
        feature = self._known_features()[resolved]
        return enhance_feature_status(feature, self.mapper.get_tests_for_feature(resolved))

    def generate_test_report(self) -> str:
        return render_test_report(self.runner.get_results().values())

    # Execution

    async def run_test(self, test_id: str) -> FeatureTestResult:
        result = await self.runner.run_test(test_id)
        self.mapper.update_feature_test_status([test_id])
        return result

    async def run_all_tests(self) -> RunSummary:
        summary = await self.runner.run_all()
        self.mapper.update_feature_test_status(result.id for result in summary.results)
        return summary

    # HTTP bridge surface

    def list_features(self) -> dict[str, Any]:
        verification = self._known_features()
        enhanced = self.get_enhanced_features()
        tested = {status.name for status in enhanced if verification[status.name].tested}
        return {
            "features": [status.to_dict() for status in enhanced],
            "stats": {
                "total": len(enhanced),
                "implemented": sum(1 for status in enhanced if status.implemented),
                "tested": len(tested),
                "complete": sum(1 for status in enhanced if status.implemented and status.name in tested),
            },
            "timestamp": utc_now().isoformat(),
        }

    def get_feature_detail(self, name: str) -> dict[str, Any]:
        resolved = self._resolve_feature_name(name)
        verification = self._known_features()[resolved]
        tests = self.mapper.get_tests_for_feature(resolved)
        status = enhance_feature_status(verification, tests)
        return {
            "name": resolved,
            "status": status.to_dict(),
            "relatedTests": [test.to_dict() for test in tests],
            "recentLogs": [entry.to_dict() for entry in self.recent_feature_logs(resolved)],
            "recommendations": feature_recommendations(status, verification.tested, tests),
            "timestamp": utc_now().isoformat(),
        }

    def recent_feature_logs(self, name: str, limit: int = RECENT_FEATURE_LOG_LIMIT) -> list[LogEntry]:
        """Newest log entries traced under the feature or mentioning it."""
        context_ids = {context.id for context in self.tracer.get_contexts_by_feature(name)}
        for test_id in self.mapper.forward.get(name, ()):
            result = self.runner.get_result(test_id)
            if result is not None and result.context_id is not None:
                context_ids.add(result.context_id)
        needle = name.lower()
        selected: list[LogEntry] = []
        for entry in self.store.get_logs():
            mentioned = needle in entry.message.lower()
            if not mentioned and entry.data is not None:
                mentioned = needle in json.dumps(entry.data, default=str).lower()
            if mentioned or (entry.context_id is not None and entry.context_id in context_ids):
                selected.append(entry)
                if len(selected) >= limit:
                    break
        return selected

    def list_tests(self) -> dict[str, Any]:
        tests = self.get_feature_tests()
        return {
            "tests": [test.to_dict() for test in tests],
            "stats": {
                "total": len(tests),
                "passed": sum(1 for test in tests if test.status is RunStatus.PASSED),
                "failed": sum(1 for test in tests if test.status is RunStatus.FAILED),
                "notStarted": sum(1 for test in tests if test.status is RunStatus.NOT_STARTED),
                "skipped": sum(1 for test in tests if test.status is RunStatus.SKIPPED),
            },
            "timestamp": utc_now().isoformat(),
        }

    def fetch_logs(
        self,
        level: LogLevel | int | str | None = None,
        area: str | None = None,
        from_date: DateBound | None = None,
        to_date: DateBound | None = None,
        limit: int | None = None,
    ) -> list[LogEntry]:
        return self.store.get_logs(level=level, area=area, from_date=from_date, to_date=to_date, limit=limit)

    def export_debug_data(self) -> dict[str, Any]:
        return self.store.export_data()

    def import_debug_data(self, blob: dict[str, Any] | str | bytes) -> bool:
        if not self.store.import_data(blob):
            self.debug_logger.error(AREA_UI, "Failed to import debug data")
            return False
        self.runner.replace_results(self.store.get_feature_test_results())
        self.mapper.refresh_mapping()
        return True

    async def query(self, text: str) -> dict[str, Any]:
        """Run one allow-listed query; raises ``ValidationError`` for anything else."""
        parsed = parse_query(text)
        return {"query": text, "type": parsed.kind.value, "result": await self._dispatch(parsed)}

    async def _dispatch(self, query: DebugQuery) -> Any:
        kind = query.kind
        if kind is QueryKind.FEATURE_VERIFICATION_STATUS:
            return {
                name: feature.to_dict()
                for name, feature in self.debug_logger.get_feature_verification_status().items()
            }
        if kind is QueryKind.ENHANCED_FEATURES:
            return [status.to_dict() for status in self.get_enhanced_features()]
        if kind is QueryKind.ENHANCED_FEATURE:
            return self.get_enhanced_feature(query.argument or "").to_dict()
        if kind is QueryKind.FEATURE_TESTS:
            return [test.to_dict() for test in self.get_feature_tests()]
        if kind is QueryKind.TESTS_FOR_FEATURE:
            return [test.to_dict() for test in self.get_tests_for_feature(query.argument or "")]
        if kind is QueryKind.TEST_RESULTS:
            return {test_id: result.to_dict() for test_id, result in self.get_test_results().items()}
        if kind is QueryKind.LOGS:
            return [entry.to_dict() for entry in self.fetch_logs()]
        if kind is QueryKind.API_TEST_RESULTS:
            return [result.to_dict() for result in self.store.get_api_test_results()]
        if kind is QueryKind.EXPORT_DEBUG_DATA:
            return self.export_debug_data()
        if kind is QueryKind.TEST_REPORT:
            return self.generate_test_report()
        if kind is QueryKind.RUN_FEATURE_TEST:
            return (await self.run_test(query.argument or "")).to_dict()
        if kind is QueryKind.RUN_ALL_FEATURE_TESTS:
            return (await self.run_all_tests()).to_dict()
        raise AssertionError(f"Unhandled query kind: {kind}")


__all__ = ["DebugService", "feature_recommendations"]
