from __future__ import annotations

import datetime as datetime_module
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from featurecheck.core.errors import ValidationError

TestBody = Callable[[str], bool | Awaitable[bool]]
AsyncTestBody = Callable[[str], Awaitable[bool]]


class LogLevel(IntEnum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3

    @classmethod
    def parse(cls, value: LogLevel | int | str) -> LogLevel:
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError as exc:
                raise ValidationError(f"Unknown log level: {value!r}") from exc
        normalized = str(value).strip().upper()
        if normalized == "WARNING":
            normalized = "WARN"
        if normalized.isdigit():
            return cls.parse(int(normalized))
        try:
            return cls[normalized]
        except KeyError as exc:
            raise ValidationError(f"Unknown log level: {value!r}") from exc


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ContextStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"


class FeatureTestStatus(str, Enum):
    NOT_TESTED = "not_tested"
    PASSED = "passed"
    FAILED = "failed"
    PARTIALLY_PASSED = "partially_passed"
    SKIPPED = "skipped"


def utc_now() -> datetime_module.datetime:
    return datetime_module.datetime.now(datetime_module.UTC)


def parse_timestamp(value: Any) -> datetime_module.datetime:
    """Re-hydrate a persisted timestamp into an aware UTC datetime."""
    if isinstance(value, datetime_module.datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime_module.datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds, as emitted by JavaScript clients.
        parsed = datetime_module.datetime.fromtimestamp(value / 1000, tz=datetime_module.UTC)
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=datetime_module.UTC)
    return parsed.astimezone(datetime_module.UTC)


def _iso(value: datetime_module.datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(slots=True, frozen=True)
class LogEntry:
    level: LogLevel
    area: str
    message: str
    timestamp: datetime_module.datetime = field(default_factory=utc_now)
    data: Any = None
    context_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "level": int(self.level),
            "area": self.area,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.data is not None:
            payload["data"] = self.data
        if self.context_id is not None:
            payload["contextId"] = self.context_id
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogEntry:
        if not isinstance(data, dict):
            raise ValidationError("Log entry must be an object")
        return cls(
            level=LogLevel.parse(data.get("level", LogLevel.INFO)),
            area=str(data.get("area", "")),
            message=str(data.get("message", "")),
            timestamp=parse_timestamp(data["timestamp"]) if "timestamp" in data else utc_now(),
            data=data.get("data"),
            context_id=data.get("contextId"),
        )


@dataclass(slots=True)
class ExecutionContext:
    id: str
    start_time: float
    feature: str | None = None
    test_id: str | None = None
    end_time: float | None = None
    status: ContextStatus = ContextStatus.RUNNING
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.status is not ContextStatus.RUNNING

    @property
    def duration_ms(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "startTime": self.start_time,
            "status": self.status.value,
            "data": self.data,
        }
        if self.feature is not None:
            payload["feature"] = self.feature
        if self.test_id is not None:
            payload["testId"] = self.test_id
        if self.end_time is not None:
            payload["endTime"] = self.end_time
        return payload


@dataclass(slots=True)
class FeatureTest:
    id: str
    name: str
    description: str
    area: str
    test: TestBody
    dependencies: tuple[str, ...] = ()
    feature_name: str | None = None


@dataclass(slots=True)
class FeatureTestResult:
    id: str
    name: str
    description: str
    status: RunStatus
    error: str | None = None
    duration: float | None = None
    timestamp: datetime_module.datetime = field(default_factory=utc_now)
    context_id: str | None = None
    details: Any = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error is not None:
            payload["error"] = self.error
        if self.duration is not None:
            payload["duration"] = self.duration
        if self.context_id is not None:
            payload["contextId"] = self.context_id
        if self.details is not None:
            payload["details"] = self.details
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeatureTestResult:
        if not isinstance(data, dict):
            raise ValidationError("Feature test result must be an object")
        try:
            status = RunStatus(data.get("status", RunStatus.NOT_STARTED.value))
        except ValueError as exc:
            raise ValidationError(f"Unknown test status: {data.get('status')!r}") from exc
        duration = data.get("duration")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            status=status,
            error=data.get("error"),
            duration=float(duration) if duration is not None else None,
            timestamp=parse_timestamp(data["timestamp"]) if data.get("timestamp") is not None else utc_now(),
            context_id=data.get("contextId"),
            details=data.get("details"),
        )


@dataclass(slots=True)
class ApiTestResult:
    endpoint: str
    method: str
    status: int
    success: bool
    data: Any = None
    error: str | None = None
    duration: float = 0.0
    timestamp: datetime_module.datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "endpoint": self.endpoint,
            "method": self.method,
            "status": self.status,
            "success": self.success,
            "data": self.data,
            "duration": self.duration,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApiTestResult:
        if not isinstance(data, dict):
            raise ValidationError("API test result must be an object")
        error = data.get("error")
        return cls(
            endpoint=str(data.get("endpoint", "")),
            method=str(data.get("method", "GET")),
            status=int(data.get("status", 0)),
            success=bool(data.get("success", False)),
            data=data.get("data"),
            error=str(error) if error is not None else None,
            duration=float(data.get("duration", 0.0)),
            timestamp=parse_timestamp(data["timestamp"]) if data.get("timestamp") is not None else utc_now(),
        )


@dataclass(slots=True)
class FeatureVerification:
    name: str
    implemented: bool = False
    tested: bool = False
    last_verified: datetime_module.datetime | None = None
    notes: list[str] = field(default_factory=list)
    area: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "implemented": self.implemented,
            "tested": self.tested,
            "lastVerified": _iso(self.last_verified),
            "notes": list(self.notes),
            "area": self.area,
        }


@dataclass(slots=True)
class FeatureTestInfo:
    id: str
    name: str
    description: str
    feature_name: str
    area: str | None
    status: RunStatus
    last_run: datetime_module.datetime | None = None
    duration: float | None = None
    error: str | None = None
    dependencies: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "featureName": self.feature_name,
            "area": self.area,
            "status": self.status.value,
            "lastRun": _iso(self.last_run),
            "duration": self.duration,
            "error": self.error,
            "dependencies": list(self.dependencies),
        }


@dataclass(slots=True)
class ResultSummary:
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    not_run: int = 0
    total: int = 0
    last_run: datetime_module.datetime | None = None

    @property
    def tests_run(self) -> int:
        return self.passed + self.failed + self.skipped

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "notRun": self.not_run,
            "total": self.total,
            "lastRun": _iso(self.last_run),
        }


@dataclass(slots=True)
class EnhancedFeatureStatus:
    name: str
    implemented: bool
    test_status: FeatureTestStatus
    area: str | None = None
    implemented_at: datetime_module.datetime | None = None
    last_tested: datetime_module.datetime | None = None
    notes: list[str] = field(default_factory=list)
    summary: ResultSummary = field(default_factory=ResultSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "area": self.area,
            "implemented": self.implemented,
            "implementedAt": _iso(self.implemented_at),
            "testStatus": self.test_status.value,
            "lastTested": _iso(self.last_tested),
            "notes": list(self.notes),
            "summary": self.summary.to_dict(),
        }


@dataclass(slots=True)
class RunSummary:
    results: list[FeatureTestResult] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.status is RunStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if result.status is RunStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for result in self.results if result.status is RunStatus.SKIPPED)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        return self.passed == self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "total": self.total,
            "durationMs": self.duration_ms,
            "results": [result.to_dict() for result in self.results],
        }


@dataclass(slots=True)
class PerformanceMetric:
    operation: str
    area: str
    start_time: float
    end_time: float | None = None

    @property
    def duration_ms(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000


__all__ = [
    "ApiTestResult",
    "AsyncTestBody",
    "ContextStatus",
    "EnhancedFeatureStatus",
    "ExecutionContext",
    "FeatureTest",
    "FeatureTestInfo",
    "FeatureTestResult",
    "FeatureTestStatus",
    "FeatureVerification",
    "LogEntry",
    "LogLevel",
    "PerformanceMetric",
    "ResultSummary",
    "RunStatus",
    "RunSummary",
    "TestBody",
    "parse_timestamp",
    "utc_now",
]
