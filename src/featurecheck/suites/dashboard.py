"""Dashboard API checks; these need the application server to be reachable."""
from __future__ import annotations

from typing import Any

from featurecheck.core.constants import API_ENDPOINTS, AREA_API, AREA_DASHBOARD
from featurecheck.core.models import FeatureTest, LogLevel
from featurecheck.core.service import DebugService

_STATS_FIELDS = ("activeGoals", "completedGoals", "pointsEarned")
_GOAL_FIELDS = {"id": int, "description": str, "targetValue": int, "currentValue": int}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _stats_shape_ok(payload: Any) -> bool:
    return isinstance(payload, dict) and all(_is_number(payload.get(key)) for key in _STATS_FIELDS)


def _goals_shape_ok(payload: Any) -> bool:
    if not isinstance(payload, list):
        return False
    if not payload:
        return True
    first = payload[0]
    if not isinstance(first, dict):
        return False
    for key, expected in _GOAL_FIELDS.items():
        value = first.get(key)
        if expected is int and not _is_number(value):
            return False
        if expected is str and not isinstance(value, str):
            return False
    return True


def _action_items_shape_ok(payload: Any) -> bool:
    return isinstance(payload, list) and all(isinstance(item, dict) and "id" in item for item in payload)


def _probe(service: DebugService, endpoint: str, shape_ok):
    async def check(context_id: str) -> bool:
        result = await service.api_tester.test_endpoint(endpoint, context_id=context_id)
        if not result.success:
            return False
        if not shape_ok(result.data):
            service.tracer.log_step(
                context_id,
                f"Unexpected payload shape from {endpoint}",
                LogLevel.ERROR,
                AREA_DASHBOARD,
                {"data": result.data},
            )
            return False
        return True

    return check


def register(service: DebugService) -> None:
    service.register_feature_test(
        FeatureTest(
            id="dashboard-stats-api",
            name="Dashboard Stats API Test",
            description="Verifies the dashboard stats API returns correct data",
            area=AREA_DASHBOARD,
            test=_probe(service, API_ENDPOINTS["dashboard"], _stats_shape_ok),
            feature_name="dashboard-stats",
        )
    )
    service.register_feature_test(
        FeatureTest(
            id="dashboard-goals-api",
            name="Dashboard Goals API Test",
            description="Verifies the goals API returns well-formed goals",
            area=AREA_DASHBOARD,
            test=_probe(service, API_ENDPOINTS["goals"], _goals_shape_ok),
            feature_name="dashboard-stats",
        )
    )
    service.register_feature_test(
        FeatureTest(
            id="dashboard-action-items-api",
            name="Dashboard Action Items API Test",
            description="Verifies the action items API returns correctly formatted data",
            area=AREA_DASHBOARD,
            test=_probe(service, API_ENDPOINTS["action_items"], _action_items_shape_ok),
            feature_name="dashboard-stats",
        )
    )
    service.register_feature_test(
        FeatureTest(
            id="goal-lifecycle-api",
            name="Goal Lifecycle API Test",
            description="Creates, updates, logs progress on and deletes a goal",
            area=AREA_API,
            test=service.api_tester.test_goal_lifecycle,
            feature_name="goal-creation",
            dependencies=("dashboard-goals-api",),
        )
    )
