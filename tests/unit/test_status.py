from __future__ import annotations

import datetime as dt

from featurecheck.core.models import FeatureTestInfo, FeatureTestStatus, FeatureVerification, RunStatus
from featurecheck.core.status import (
    calculate_test_result_summary,
    determine_feature_test_status,
    enhance_feature_status,
)

_T1 = dt.datetime(2024, 5, 1, 9, 0, tzinfo=dt.UTC)
_T2 = dt.datetime(2024, 5, 2, 9, 0, tzinfo=dt.UTC)


def _info(status: RunStatus, last_run: dt.datetime | None = None, test_id: str = "t") -> FeatureTestInfo:
    return FeatureTestInfo(
        id=test_id,
        name=test_id,
        description="",
        feature_name="goal-creation",
        area="goal",
        status=status,
        last_run=last_run,
    )


def test_summary_counts_each_bucket() -> None:
    summary = calculate_test_result_summary(
        [
            _info(RunStatus.PASSED, _T1),
            _info(RunStatus.FAILED, _T2),
            _info(RunStatus.SKIPPED),
            _info(RunStatus.NOT_STARTED),
        ]
    )

    assert (summary.passed, summary.failed, summary.skipped, summary.not_run, summary.total) == (1, 1, 1, 1, 4)
    assert summary.tests_run == 3
    assert summary.last_run == _T2


def test_status_precedence() -> None:
    assert determine_feature_test_status([]) is FeatureTestStatus.NOT_TESTED
    assert determine_feature_test_status([_info(RunStatus.PASSED)] * 2) is FeatureTestStatus.PASSED
    assert (
        determine_feature_test_status([_info(RunStatus.PASSED), _info(RunStatus.FAILED)])
        is FeatureTestStatus.FAILED
    )
    assert (
        determine_feature_test_status([_info(RunStatus.PASSED), _info(RunStatus.SKIPPED)])
        is FeatureTestStatus.PARTIALLY_PASSED
    )
    assert (
        determine_feature_test_status([_info(RunStatus.PASSED), _info(RunStatus.NOT_STARTED)])
        is FeatureTestStatus.PARTIALLY_PASSED
    )
    assert determine_feature_test_status([_info(RunStatus.SKIPPED)] * 2) is FeatureTestStatus.SKIPPED
    assert determine_feature_test_status([_info(RunStatus.NOT_STARTED)]) is FeatureTestStatus.NOT_TESTED


def test_passing_tests_imply_implementation() -> None:
    feature = FeatureVerification(name="goal-creation", implemented=False)

    status = enhance_feature_status(feature, [_info(RunStatus.PASSED, _T1), _info(RunStatus.SKIPPED, _T2)])

    assert status.implemented is True
    assert status.implemented_at == _T2
    assert status.last_tested == _T2
    assert status.test_status is FeatureTestStatus.PARTIALLY_PASSED


def test_manual_verification_timestamp_wins() -> None:
    feature = FeatureVerification(name="goal-creation", implemented=True, last_verified=_T1, notes=["by hand"])

    status = enhance_feature_status(feature, [_info(RunStatus.FAILED, _T2)])

    assert status.implemented is True
    assert status.implemented_at == _T1
    assert status.test_status is FeatureTestStatus.FAILED
    assert status.notes == ["by hand"]


def test_untested_unimplemented_feature() -> None:
    status = enhance_feature_status(FeatureVerification(name="analytics-charts"), [])

    assert status.implemented is False
    assert status.implemented_at is None
    assert status.last_tested is None
    assert status.to_dict()["testStatus"] == "not_tested"
