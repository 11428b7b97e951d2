"""Folds mapped test results and manual flags into one feature status."""
from __future__ import annotations

from collections.abc import Iterable

from featurecheck.core.models import (
    EnhancedFeatureStatus,
    FeatureTestInfo,
    FeatureTestStatus,
    FeatureVerification,
    ResultSummary,
    RunStatus,
)


def calculate_test_result_summary(tests: Iterable[FeatureTestInfo]) -> ResultSummary:
    summary = ResultSummary()
    for test in tests:
        summary.total += 1
        if test.status is RunStatus.PASSED:
            summary.passed += 1
        elif test.status is RunStatus.FAILED:
            summary.failed += 1
        elif test.status is RunStatus.SKIPPED:
            summary.skipped += 1
        else:
            summary.not_run += 1
        if test.last_run is not None and (summary.last_run is None or test.last_run > summary.last_run):
            summary.last_run = test.last_run
    return summary


def status_from_summary(summary: ResultSummary) -> FeatureTestStatus:
    if summary.total == 0:
        return FeatureTestStatus.NOT_TESTED
    if summary.passed == summary.total:
        return FeatureTestStatus.PASSED
    if summary.failed > 0:
        return FeatureTestStatus.FAILED
    if summary.passed > 0:
        # Remaining tests are skipped or have not run.
        return FeatureTestStatus.PARTIALLY_PASSED
    if summary.skipped > 0 and summary.skipped == summary.tests_run:
        return FeatureTestStatus.SKIPPED
    return FeatureTestStatus.NOT_TESTED


def determine_feature_test_status(tests: Iterable[FeatureTestInfo]) -> FeatureTestStatus:
    return status_from_summary(calculate_test_result_summary(tests))


def enhance_feature_status(feature: FeatureVerification, tests: Iterable[FeatureTestInfo]) -> EnhancedFeatureStatus:
    """Combine a feature's manual flags with the results of its mapped tests.

    Passing tests imply the feature is implemented even when nobody marked it
    so by hand; without passing tests the manual flag stands.
    """
    summary = calculate_test_result_summary(tests)
    implemented = feature.implemented or summary.passed > 0
    implemented_at = feature.last_verified
    if implemented_at is None and implemented:
        implemented_at = summary.last_run
    return EnhancedFeatureStatus(
        name=feature.name,
        area=feature.area,
        implemented=implemented,
        implemented_at=implemented_at,
        test_status=status_from_summary(summary),
        last_tested=summary.last_run,
        notes=list(feature.notes),
        summary=summary,
    )


__all__ = [
    "calculate_test_result_summary",
    "determine_feature_test_status",
    "enhance_feature_status",
    "status_from_summary",
]
