"""Associates every registered test with exactly one feature.

Matching runs in strict tiers; each tier only places tests that no earlier
tier placed:

1. the test's explicit ``feature_name``;
2. the curated feature -> test id table;
3. a registered feature whose ``area`` equals the test's area;
4. fuzzy name containment on normalized (alphanumeric, lowercase) strings;
5. a looser area comparison, else the synthetic "Other Features" bucket.

The indices are rebuilt from scratch on every refresh, never patched.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

from featurecheck.core.constants import AREA_UI, CURATED_FEATURE_TESTS, OTHER_FEATURES
from featurecheck.core.debug_logger import DebugLogger
from featurecheck.core.models import FeatureTest, FeatureTestInfo, FeatureVerification, RunStatus
from featurecheck.core.runner import FeatureTestRunner

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
CuratedTable = Iterable[tuple[str, Iterable[str]]]


def normalize_name(value: str | None) -> str:
    if not value:
        return ""
    return "".join(ch for ch in value.lower() if ch.isalnum())


def _overlaps(left: str, right: str) -> bool:
    if not left or not right:
        return False
    return left in right or right in left


class _MappingBuilder:
    def __init__(self, features: Mapping[str, FeatureVerification]) -> None:
        self.forward: dict[str, list[str]] = {name: [] for name in features}
        self.reverse: dict[str, str] = {}

    def assign(self, test_id: str, feature_name: str) -> None:
        self.forward.setdefault(feature_name, []).append(test_id)
        self.reverse[test_id] = feature_name

    def is_mapped(self, test_id: str) -> bool:
        return test_id in self.reverse


def build_mapping(
    tests: list[FeatureTest],
    features: Mapping[str, FeatureVerification],
    curated: CuratedTable = CURATED_FEATURE_TESTS,
) -> tuple[dict[str, list[str]], dict[str, str]]:
    builder = _MappingBuilder(features)

    for test in tests:
        if test.feature_name:
            builder.assign(test.id, test.feature_name)

    registered_ids = {test.id for test in tests}
    for feature_name, test_ids in curated:
        for test_id in test_ids:
            if test_id in registered_ids and not builder.is_mapped(test_id):
                builder.assign(test_id, feature_name)

    for test in tests:
        if builder.is_mapped(test.id):
            continue
        for feature_name, feature in features.items():
            if feature.area and feature.area == test.area:
                builder.assign(test.id, feature_name)
                break

    for test in tests:
        if builder.is_mapped(test.id):
            continue
        test_name = normalize_name(test.name)
        test_id = normalize_name(test.id)
        for feature_name in features:
            normalized_feature = normalize_name(feature_name)
            if _overlaps(test_name, normalized_feature) or _overlaps(test_id, normalized_feature):
                builder.assign(test.id, feature_name)
                break

    for test in tests:
        if builder.is_mapped(test.id):
            continue
        test_area = normalize_name(test.area)
        fallback = next(
            (
                feature_name
                for feature_name, feature in features.items()
                if test_area and normalize_name(feature.area) == test_area
            ),
            OTHER_FEATURES,
        )
        builder.assign(test.id, fallback)

    return builder.forward, builder.reverse


class FeatureTestMapper:
    def __init__(
        self,
        runner: FeatureTestRunner,
        debug_logger: DebugLogger,
        curated: CuratedTable = CURATED_FEATURE_TESTS,
    ) -> None:
        self._runner = runner
        self._logger = debug_logger
        self._curated = tuple((name, tuple(ids)) for name, ids in curated)
        self._forward: dict[str, list[str]] = {}
        self._reverse: dict[str, str] = {}
        self._listeners: list[Listener] = []
        self._rebuild()

    @property
    def forward(self) -> dict[str, list[str]]:
        return {name: list(ids) for name, ids in self._forward.items()}

    @property
    def reverse(self) -> dict[str, str]:
        return dict(self._reverse)

    def _rebuild(self) -> None:
        tests = self._runner.get_registered_tests()
        self._forward, self._reverse = build_mapping(
            tests,
            self._logger.get_feature_verification_status(),
            self._curated,
        )
        logger.debug(
            "Feature test mapping completed: %d features, %d tests",
            len(self._forward),
            len(self._reverse),
        )

    def refresh_mapping(self) -> None:
        self._rebuild()
        self._notify()

    def get_feature_for_test(self, test_id: str) -> str | None:
        return self._reverse.get(test_id)

    def get_feature_tests(self) -> list[FeatureTestInfo]:
        results = self._runner.get_results()
        infos: list[FeatureTestInfo] = []
        for test in self._runner.get_registered_tests():
            result = results.get(test.id)
            infos.append(
                FeatureTestInfo(
                    id=test.id,
                    name=test.name,
                    description=test.description,
                    feature_name=self._reverse.get(test.id, ""),
                    area=test.area,
                    status=result.status if result is not None else RunStatus.NOT_STARTED,
                    last_run=result.timestamp if result is not None else None,
                    duration=result.duration if result is not None else None,
                    error=result.error if result is not None else None,
                    dependencies=test.dependencies,
                )
            )
        return infos

    def get_tests_for_feature(self, feature_name: str) -> list[FeatureTestInfo]:
        test_ids = set(self._forward.get(feature_name, ()))
        return [info for info in self.get_feature_tests() if info.id in test_ids]

    def update_feature_test_status(self, test_ids: Iterable[str]) -> None:
        results = self._runner.get_results()
        for test_id in test_ids:
            feature_name = self._reverse.get(test_id)
            result = results.get(test_id)
            if feature_name and result is not None and result.status is RunStatus.PASSED:
                self._logger.mark_feature_tested(feature_name, True, f"Test passed: {result.name}")
        self.refresh_mapping()

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Listener) -> None:
        self._listeners = [listener for listener in self._listeners if listener is not callback]

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as exc:
                logger.exception("Error in feature test mapping listener")
                self._logger.error(AREA_UI, "Error in feature test service listener", {"error": str(exc)})


__all__ = ["FeatureTestMapper", "build_mapping", "normalize_name"]
