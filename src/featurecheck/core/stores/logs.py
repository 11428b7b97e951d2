"""Bounded, append-only debug storage for logs, test results and API probes.

Generic logs and API test results live in fixed-capacity deques: once full,
every insert evicts the oldest entry.  Feature test results are keyed by test
id, so a rerun overwrites the previous slot instead of growing the store.

The whole store serializes to a single record::

    {"logs": [...], "featureTestResults": {...}, "apiTestResults": [...]}

with ISO-8601 timestamp strings, newest entries first.
"""
from __future__ import annotations

import datetime as datetime_module
import json
import logging
import re
from collections import deque
from collections.abc import Mapping
from typing import Any

from featurecheck.core.constants import (
    DEFAULT_API_RESULT_CAPACITY,
    DEFAULT_LOG_CAPACITY,
    STORE_KEY_API_TEST_RESULTS,
    STORE_KEY_FEATURE_TEST_RESULTS,
    STORE_KEY_LOGS,
)
from featurecheck.core.errors import PersistenceError, ValidationError
from featurecheck.core.models import (
    ApiTestResult,
    FeatureTestResult,
    LogEntry,
    LogLevel,
    parse_timestamp,
)
from featurecheck.core.stores.backends import StoreBackend

logger = logging.getLogger(__name__)

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_END_OF_DAY = datetime_module.time(23, 59, 59, 999000)

DateBound = datetime_module.datetime | datetime_module.date | str


def normalize_date_bound(value: DateBound | None, *, end_of_day: bool) -> datetime_module.datetime | None:
    """Turn a filter bound into an aware UTC datetime.

    A bare date becomes the start of that day, or its last millisecond when
    ``end_of_day`` is set, so an inclusive ``to`` date covers the whole day.
    """
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if _DATE_ONLY.match(stripped):
            value = datetime_module.date.fromisoformat(stripped)
        else:
            return parse_timestamp(stripped)
    if isinstance(value, datetime_module.datetime):
        return parse_timestamp(value)
    if isinstance(value, datetime_module.date):
        clock = _END_OF_DAY if end_of_day else datetime_module.time.min
        return datetime_module.datetime.combine(value, clock, tzinfo=datetime_module.UTC)
    raise ValidationError(f"Invalid date filter: {value!r}")


class BoundedLogStore:
    def __init__(
        self,
        log_capacity: int = DEFAULT_LOG_CAPACITY,
        api_result_capacity: int = DEFAULT_API_RESULT_CAPACITY,
        backend: StoreBackend | None = None,
    ) -> None:
        if log_capacity <= 0 or api_result_capacity <= 0:
            raise ValidationError("Store capacities must be positive")
        self._log_capacity = log_capacity
        self._api_result_capacity = api_result_capacity
        self._backend = backend
        # Deques hold oldest..newest; readers get newest first.
        self._logs: deque[LogEntry] = deque(maxlen=log_capacity)
        self._feature_test_results: dict[str, FeatureTestResult] = {}
        self._api_test_results: deque[ApiTestResult] = deque(maxlen=api_result_capacity)

    @property
    def log_capacity(self) -> int:
        return self._log_capacity

    @property
    def api_result_capacity(self) -> int:
        return self._api_result_capacity

    @property
    def backend(self) -> StoreBackend | None:
        return self._backend

    def __len__(self) -> int:
        return len(self._logs)

    # Generic logs

    def add_entry(self, entry: LogEntry) -> LogEntry:
        self._logs.append(entry)
        return entry

    def add_log(
        self,
        level: LogLevel,
        area: str,
        message: str,
        data: Any = None,
        context_id: str | None = None,
    ) -> LogEntry:
        return self.add_entry(
            LogEntry(level=LogLevel.parse(level), area=area, message=message, data=data, context_id=context_id)
        )

    def get_logs(
        self,
        level: LogLevel | int | str | None = None,
        area: str | None = None,
        from_date: DateBound | None = None,
        to_date: DateBound | None = None,
        limit: int | None = None,
        *,
        newest_first: bool = True,
    ) -> list[LogEntry]:
        min_level = LogLevel.parse(level) if level is not None else None
        lower = normalize_date_bound(from_date, end_of_day=False)
        upper = normalize_date_bound(to_date, end_of_day=True)
        if limit is not None and limit < 0:
            raise ValidationError("limit must be non-negative")

        selected: list[LogEntry] = []
        for entry in reversed(self._logs):
            if min_level is not None and entry.level < min_level:
                continue
            if area is not None and entry.area != area:
                continue
            if lower is not None and entry.timestamp < lower:
                continue
            if upper is not None and entry.timestamp > upper:
                continue
            selected.append(entry)
            if limit is not None and len(selected) >= limit:
                break
        if not newest_first:
            selected.reverse()
        return selected

    def clear_logs(self) -> None:
        self._logs.clear()
        self.save()

    # Feature test results

    def update_feature_test_result(self, result: FeatureTestResult) -> None:
        self._feature_test_results[result.id] = result
        self.save()

    def update_feature_test_results(self, results: Mapping[str, FeatureTestResult]) -> None:
        self._feature_test_results.update(results)
        self.save()

    def get_feature_test_results(self) -> dict[str, FeatureTestResult]:
        return dict(self._feature_test_results)

    def get_feature_test_result(self, test_id: str) -> FeatureTestResult | None:
        return self._feature_test_results.get(test_id)

    def clear_feature_test_results(self) -> None:
        self._feature_test_results.clear()
        self.save()

    # API test results

    def add_api_test_result(self, result: ApiTestResult) -> None:
        self._api_test_results.append(result)
        self.save()

    def get_api_test_results(self) -> list[ApiTestResult]:
        return list(reversed(self._api_test_results))

    def clear_api_test_results(self) -> None:
        self._api_test_results.clear()
        self.save()

    # Import / export

    def export_data(self) -> dict[str, Any]:
        return {
            STORE_KEY_LOGS: [entry.to_dict() for entry in reversed(self._logs)],
            STORE_KEY_FEATURE_TEST_RESULTS: {
                test_id: result.to_dict() for test_id, result in self._feature_test_results.items()
            },
            STORE_KEY_API_TEST_RESULTS: [result.to_dict() for result in reversed(self._api_test_results)],
        }

    def export_json(self) -> str:
        return json.dumps(self.export_data(), indent=2, default=str)

    def import_data(self, blob: Mapping[str, Any] | str | bytes) -> bool:
        """Replace the store with a previously exported payload.

        Returns ``False`` and leaves the store untouched when the payload is
        malformed.
        """
        if not self._replace_state(blob):
            return False
        self.save()
        return True

    def _replace_state(self, blob: Mapping[str, Any] | str | bytes) -> bool:
        try:
            payload = json.loads(blob) if isinstance(blob, (str, bytes)) else blob
            logs, feature_results, api_results = self._parse_payload(payload)
        except (ValidationError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Rejected debug storage import: %s", exc)
            return False

        self._logs = deque(reversed(logs), maxlen=self._log_capacity)
        self._feature_test_results = feature_results
        self._api_test_results = deque(reversed(api_results), maxlen=self._api_result_capacity)
        return True

    @staticmethod
    def _parse_payload(
        payload: Any,
    ) -> tuple[list[LogEntry], dict[str, FeatureTestResult], list[ApiTestResult]]:
        if not isinstance(payload, Mapping):
            raise ValidationError("Debug storage payload must be an object")
        raw_logs = payload.get(STORE_KEY_LOGS)
        if not isinstance(raw_logs, list):
            raise ValidationError("Debug storage payload requires list field `logs`")
        raw_feature_results = payload.get(STORE_KEY_FEATURE_TEST_RESULTS) or {}
        if not isinstance(raw_feature_results, Mapping):
            raise ValidationError("`featureTestResults` must be an object")
        raw_api_results = payload.get(STORE_KEY_API_TEST_RESULTS) or []
        if not isinstance(raw_api_results, list):
            raise ValidationError("`apiTestResults` must be a list")

        logs = [LogEntry.from_dict(item) for item in raw_logs]
        feature_results = {
            str(test_id): FeatureTestResult.from_dict(item) for test_id, item in raw_feature_results.items()
        }
        api_results = [ApiTestResult.from_dict(item) for item in raw_api_results]
        return logs, feature_results, api_results

    # Durable backing

    def load(self) -> bool:
        if self._backend is None:
            return False
        try:
            payload = self._backend.read()
        except PersistenceError as exc:
            logger.warning("Failed to initialize debug storage: %s", exc)
            return False
        if payload is None:
            return False
        return self._replace_state(payload)

    def save(self) -> bool:
        if self._backend is None:
            return False
        try:
            self._backend.write(self.export_data())
        except PersistenceError as exc:
            logger.warning("Failed to save debug storage: %s", exc)
            return False
        return True


__all__ = ["BoundedLogStore", "DateBound", "normalize_date_bound"]
