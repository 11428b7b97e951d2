"""Offline checks of the debug infrastructure itself."""
from __future__ import annotations

from featurecheck.config import FeatureCheckConfig
from featurecheck.core.constants import AREA_STORAGE, AREA_UI
from featurecheck.core.models import FeatureTest, LogLevel, RunStatus
from featurecheck.core.service import DebugService


def _check_enhanced_logger(service: DebugService):
    async def check(context_id: str) -> bool:
        probe = service.tracer.create_context(AREA_STORAGE, "logger-test")
        service.tracer.log_step(probe.id, "Testing enhanced logger", LogLevel.INFO, AREA_STORAGE, {"test": "data"})
        service.tracer.log_api_request(probe.id, "GET", "/api/test")
        service.tracer.log_api_response(probe.id, 200, "/api/test", {"success": True}, 50.0)
        service.tracer.log_test_input(probe.id, {"input": "test"})
        service.tracer.log_test_output(probe.id, {"expected": True}, {"expected": True})
        service.tracer.complete_context(probe.id, True, {"result": "success"})

        traced = service.tracer.get_logs_by_context(probe.id)
        stored = [entry for entry in service.store.get_logs() if entry.context_id == probe.id]
        passed = len(traced) == 5 and bool(stored)
        service.tracer.log_step(
            context_id,
            f"Enhanced logger test {'passed' if passed else 'failed'}",
            LogLevel.INFO if passed else LogLevel.ERROR,
            AREA_STORAGE,
            {"tracedCount": len(traced), "storedCount": len(stored)},
        )
        return passed

    return check


async def _check_feature_tester(context_id: str) -> bool:
    scratch = DebugService(FeatureCheckConfig(register_default_features=False))
    scratch.register_feature("scratch-feature", implemented=True, area=AREA_UI)
    scratch.register_feature_test(
        FeatureTest(
            id="scratch-test",
            name="Scratch Test",
            description="Always passes",
            area=AREA_UI,
            test=lambda _: True,
        )
    )
    result = await scratch.run_test("scratch-test")
    feature = scratch.get_enhanced_feature("scratch-feature")
    return result.status is RunStatus.PASSED and feature.summary.passed == 1


def register(service: DebugService) -> None:
    service.register_feature_test(
        FeatureTest(
            id="enhanced-logger",
            name="Enhanced Logger",
            description="Verify enhanced logging system with context tracking",
            area=AREA_STORAGE,
            test=_check_enhanced_logger(service),
        )
    )
    service.register_feature_test(
        FeatureTest(
            id="feature-tester",
            name="Feature Tester",
            description="Verify feature testing functionality",
            area=AREA_UI,
            test=_check_feature_tester,
        )
    )
    service.register_feature_test(
        FeatureTest(
            id="debug-infrastructure",
            name="Debug Infrastructure Integration",
            description="Verify all debug components work together",
            area=AREA_UI,
            test=lambda _: True,
            dependencies=("enhanced-logger", "feature-tester"),
        )
    )
