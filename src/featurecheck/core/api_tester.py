"""Probes the application's REST endpoints and records the outcomes."""
from __future__ import annotations

import asyncio
import json
import time
import urllib.error
import urllib.request
from typing import Any

from featurecheck.core.constants import (
    API_ENDPOINTS,
    AREA_API,
    DEFAULT_API_BASE_URL,
    DEFAULT_PROBE_ENDPOINTS,
)
from featurecheck.core.debug_logger import DebugLogger
from featurecheck.core.models import ApiTestResult
from featurecheck.core.report import render_api_test_report
from featurecheck.core.stores.logs import BoundedLogStore
from featurecheck.core.tracing import ExecutionTracer


def expand_path(endpoint: str, params: dict[str, str] | None = None) -> str:
    url = endpoint
    for key, value in (params or {}).items():
        url = url.replace(f":{key}", str(value))
    return url


def _decode_body(raw: bytes) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None


class ApiEndpointTester:
    def __init__(
        self,
        store: BoundedLogStore,
        debug_logger: DebugLogger,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout_seconds: float = 8.0,
        tracer: ExecutionTracer | None = None,
    ) -> None:
        self._store = store
        self._logger = debug_logger
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._tracer = tracer

    @property
    def base_url(self) -> str:
        return self._base_url

    def _send(self, method: str, url: str, data: Any) -> tuple[int, Any]:
        body = json.dumps(data).encode("utf-8") if data is not None else None
        request = urllib.request.Request(
            url=f"{self._base_url}{url}",
            method=method,
            data=body,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout_seconds) as response:
                return int(response.status), _decode_body(response.read())
        except urllib.error.HTTPError as exc:
            return int(exc.code), _decode_body(exc.read() or b"")

    async def test_endpoint(
        self,
        endpoint: str,
        method: str = "GET",
        data: Any = None,
        params: dict[str, str] | None = None,
        context_id: str | None = None,
    ) -> ApiTestResult:
        url = expand_path(endpoint, params)
        method = method.upper()
        self._logger.info(AREA_API, f"Testing API endpoint: {method} {url}")
        if context_id is not None and self._tracer is not None:
            self._tracer.log_api_request(context_id, method, url, data)

        started = time.perf_counter()
        try:
            status, payload = await asyncio.to_thread(self._send, method, url, data)
        except (urllib.error.URLError, OSError, ValueError) as exc:
            duration = (time.perf_counter() - started) * 1000
            reason = getattr(exc, "reason", None) or exc
            result = ApiTestResult(
                endpoint=url,
                method=method,
                status=0,
                success=False,
                error=str(reason),
                duration=duration,
            )
            self._logger.error(
                AREA_API,
                f"API test failed: {method} {url}",
                {"error": result.error, "duration": f"{duration:.2f}ms"},
            )
        else:
            duration = (time.perf_counter() - started) * 1000
            success = 200 <= status < 300
            result = ApiTestResult(
                endpoint=url,
                method=method,
                status=status,
                success=success,
                data=payload,
                error=None if success else f"HTTP {status}",
                duration=duration,
            )
            if success:
                self._logger.info(
                    AREA_API,
                    f"API test successful: {method} {url}",
                    {"status": status, "duration": f"{duration:.2f}ms"},
                )
            else:
                self._logger.error(
                    AREA_API,
                    f"API test failed: {method} {url}",
                    {"status": status, "duration": f"{duration:.2f}ms"},
                )

        if context_id is not None and self._tracer is not None:
            self._tracer.log_api_response(context_id, result.status, url, result.data, result.duration)
        self._store.add_api_test_result(result)
        return result

    async def test_all_endpoints(self) -> list[ApiTestResult]:
        self._logger.info(AREA_API, "Starting comprehensive API endpoint testing")
        results: list[ApiTestResult] = []
        for key in DEFAULT_PROBE_ENDPOINTS:
            results.append(await self.test_endpoint(API_ENDPOINTS[key]))
        successful = sum(1 for result in results if result.success)
        self._logger.info(
            AREA_API,
            f"API testing complete: {successful} passed, {len(results) - successful} failed",
        )
        return results

    async def test_goal_lifecycle(self, context_id: str | None = None) -> bool:
        """Create, read, update, log progress on and delete a throwaway goal."""
        self._logger.info(AREA_API, "Testing goal lifecycle (create, read, update, delete)")
        created = await self.test_endpoint(
            API_ENDPOINTS["goals"],
            "POST",
            {
                "description": "Lifecycle probe goal",
                "targetValue": 100,
                "currentValue": 0,
                "unit": "points",
                "categoryId": None,
                "reminderFrequency": "daily",
            },
            context_id=context_id,
        )
        if not created.success or not isinstance(created.data, dict) or "id" not in created.data:
            self._logger.error(AREA_API, "Failed to create test goal", created.to_dict())
            return False
        goal_id = str(created.data["id"])

        steps = (
            ("read test goal", API_ENDPOINTS["goal_by_id"], "GET", None, {"id": goal_id}),
            ("update test goal", API_ENDPOINTS["goal_by_id"], "PATCH", {"currentValue": 50}, {"id": goal_id}),
            (
                "create progress log",
                API_ENDPOINTS["progress_logs"],
                "POST",
                {"goalId": created.data["id"], "value": 25, "notes": "Test progress log"},
                None,
            ),
            ("get progress logs", API_ENDPOINTS["progress_logs_by_goal"], "GET", None, {"goalId": goal_id}),
            ("delete test goal", API_ENDPOINTS["goal_by_id"], "DELETE", None, {"id": goal_id}),
        )
        for label, endpoint, method, data, params in steps:
            result = await self.test_endpoint(endpoint, method, data, params, context_id=context_id)
            if not result.success:
                self._logger.error(AREA_API, f"Failed to {label}", result.to_dict())
                return False

        self._logger.info(AREA_API, "Goal lifecycle test completed successfully", {"goalId": goal_id})
        return True

    def generate_api_test_report(self) -> str:
        return render_api_test_report(self._store.get_api_test_results())


__all__ = ["ApiEndpointTester", "expand_path"]
