"""StoreBackend protocol and local JSON file implementation."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from featurecheck.core.errors import PersistenceError


@runtime_checkable
class StoreBackend(Protocol):
    """Durable home for the serialized log store."""

    def read(self) -> dict[str, Any] | None: ...
    def write(self, payload: dict[str, Any]) -> None: ...


class JsonFileBackend:
    """Keeps the whole store in one JSON document on disk."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None
        try:
            loaded = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Failed to read debug storage: {self._path}", details={"error": str(exc)}) from exc
        if not isinstance(loaded, dict):
            raise PersistenceError(f"Debug storage must be a JSON object: {self._path}")
        return loaded

    def write(self, payload: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(payload, indent=2, sort_keys=True, default=str),
                encoding="utf-8",
            )
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Failed to save debug storage: {self._path}", details={"error": str(exc)}) from exc


__all__ = ["JsonFileBackend", "StoreBackend"]
