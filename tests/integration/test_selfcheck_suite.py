from __future__ import annotations

import asyncio

from featurecheck.config import FeatureCheckConfig
from featurecheck.core.models import FeatureTestStatus, RunStatus
from featurecheck.core.service import DebugService
from featurecheck.plugins import load_suites


def test_selfcheck_suite_runs_green() -> None:
    service = DebugService(FeatureCheckConfig(register_default_features=False))
    assert load_suites(service, ["featurecheck.suites.selfcheck:register"], include_entry_points=False) == 1

    summary = asyncio.run(service.run_all_tests())

    assert [result.id for result in summary.results] == ["enhanced-logger", "feature-tester", "debug-infrastructure"]
    assert all(result.status is RunStatus.PASSED for result in summary.results)
    status = service.get_enhanced_feature("Debug Infrastructure")
    assert status.test_status is FeatureTestStatus.PASSED
    assert status.summary.passed == 3


def test_dashboard_suite_reports_unreachable_server(monkeypatch) -> None:
    import urllib.error
    import urllib.request

    def _refuse(request, timeout):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(urllib.request, "urlopen", _refuse)
    service = DebugService()
    load_suites(service, ["featurecheck.suites.dashboard:register"], include_entry_points=False)

    summary = asyncio.run(service.run_all_tests())

    statuses = {result.id: result.status for result in summary.results}
    assert statuses["dashboard-stats-api"] is RunStatus.FAILED
    assert statuses["goal-lifecycle-api"] is RunStatus.SKIPPED
    assert service.get_enhanced_feature("dashboard-stats").test_status is FeatureTestStatus.FAILED
    assert all(result.status == 0 for result in service.store.get_api_test_results())
