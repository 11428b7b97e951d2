from __future__ import annotations

from typing import Any

ERROR_CODE_VALIDATION = "VALIDATION_ERROR"
ERROR_CODE_NOT_FOUND = "NOT_FOUND"
ERROR_CODE_EXECUTION = "EXECUTION_ERROR"
ERROR_CODE_PERSISTENCE = "PERSISTENCE_ERROR"


class FeatureCheckError(Exception):
    code = "FEATURECHECK_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(FeatureCheckError, ValueError):
    """Malformed registration, import, query or config input."""

    code = ERROR_CODE_VALIDATION


class NotFoundError(FeatureCheckError, LookupError):
    """Unknown test id, context id or feature name."""

    code = ERROR_CODE_NOT_FOUND


class ExecutionError(FeatureCheckError):
    """A test body raised or reported failure."""

    code = ERROR_CODE_EXECUTION

    @classmethod
    def from_exception(cls, exc: BaseException) -> ExecutionError:
        message = str(exc) or type(exc).__name__
        return cls(message, details={"exception_type": type(exc).__name__})


class PersistenceError(FeatureCheckError):
    code = ERROR_CODE_PERSISTENCE


__all__ = [
    "ERROR_CODE_EXECUTION",
    "ERROR_CODE_NOT_FOUND",
    "ERROR_CODE_PERSISTENCE",
    "ERROR_CODE_VALIDATION",
    "ExecutionError",
    "FeatureCheckError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
]
