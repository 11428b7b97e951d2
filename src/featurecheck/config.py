"""Configuration: defaults, then ``featurecheck.yaml``, then environment.

Example ``featurecheck.yaml``::

    log_capacity: 500
    test_timeout_seconds: 10
    min_level: info
    echo: true
    state_path: .featurecheck/debug_storage.json
    features:
      - name: goal-creation
        implemented: true
        area: goal
    suites:
      - myapp.checks:register
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from featurecheck.core.constants import (
    CONFIG_FILENAME,
    DEFAULT_API_BASE_URL,
    DEFAULT_API_RESULT_CAPACITY,
    DEFAULT_LOG_CAPACITY,
    DEFAULT_TEST_TIMEOUT_SECONDS,
)
from featurecheck.core.errors import ValidationError
from featurecheck.core.models import LogLevel

ENV_LOG_CAPACITY = "FEATURECHECK_LOG_CAPACITY"
ENV_API_RESULT_CAPACITY = "FEATURECHECK_API_RESULT_CAPACITY"
ENV_TEST_TIMEOUT = "FEATURECHECK_TEST_TIMEOUT"
ENV_MIN_LEVEL = "FEATURECHECK_MIN_LEVEL"
ENV_ECHO = "FEATURECHECK_ECHO"
ENV_STATE_PATH = "FEATURECHECK_STATE_PATH"
ENV_API_BASE_URL = "FEATURECHECK_API_BASE_URL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

_KNOWN_KEYS = {
    "log_capacity",
    "api_result_capacity",
    "test_timeout_seconds",
    "min_level",
    "enabled_areas",
    "echo",
    "enable_feature_verification",
    "enable_performance_metrics",
    "register_default_features",
    "state_path",
    "api_base_url",
    "features",
    "suites",
}


@dataclass(slots=True)
class FeatureDeclaration:
    name: str
    implemented: bool = False
    tested: bool = False
    notes: str = ""
    area: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> FeatureDeclaration:
        if isinstance(raw, str) and raw.strip():
            return cls(name=raw.strip())
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Feature declaration must be a name or mapping, got: {raw!r}")
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Feature declaration requires non-empty string field `name`")
        area = raw.get("area")
        return cls(
            name=name.strip(),
            implemented=bool(raw.get("implemented", False)),
            tested=bool(raw.get("tested", False)),
            notes=str(raw.get("notes") or ""),
            area=str(area) if area is not None else None,
        )


@dataclass(slots=True)
class FeatureCheckConfig:
    log_capacity: int = DEFAULT_LOG_CAPACITY
    api_result_capacity: int = DEFAULT_API_RESULT_CAPACITY
    test_timeout_seconds: float | None = DEFAULT_TEST_TIMEOUT_SECONDS
    min_level: LogLevel = LogLevel.DEBUG
    enabled_areas: tuple[str, ...] | None = None
    echo: bool = False
    enable_feature_verification: bool = True
    enable_performance_metrics: bool = True
    register_default_features: bool = True
    state_path: Path | None = None
    api_base_url: str = DEFAULT_API_BASE_URL
    features: list[FeatureDeclaration] = field(default_factory=list)
    suites: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base_dir: Path | None = None) -> FeatureCheckConfig:
        unknown = sorted(set(data) - _KNOWN_KEYS)
        if unknown:
            raise ValidationError(f"Unknown config keys: {', '.join(unknown)}")
        config = cls()
        if "log_capacity" in data:
            config.log_capacity = _positive_int(data["log_capacity"], "log_capacity")
        if "api_result_capacity" in data:
            config.api_result_capacity = _positive_int(data["api_result_capacity"], "api_result_capacity")
        if "test_timeout_seconds" in data:
            config.test_timeout_seconds = _timeout(data["test_timeout_seconds"])
        if "min_level" in data:
            config.min_level = LogLevel.parse(data["min_level"])
        if data.get("enabled_areas") is not None:
            areas = data["enabled_areas"]
            if not isinstance(areas, list) or not all(isinstance(area, str) for area in areas):
                raise ValidationError("`enabled_areas` must be a list of strings")
            config.enabled_areas = tuple(areas)
        for flag in ("echo", "enable_feature_verification", "enable_performance_metrics", "register_default_features"):
            if flag in data:
                setattr(config, flag, _bool(data[flag], flag))
        if data.get("state_path"):
            state_path = Path(str(data["state_path"]))
            if not state_path.is_absolute() and base_dir is not None:
                state_path = base_dir / state_path
            config.state_path = state_path
        if data.get("api_base_url"):
            config.api_base_url = str(data["api_base_url"])
        features = data.get("features") or []
        if not isinstance(features, list):
            raise ValidationError("`features` must be a list")
        config.features = [FeatureDeclaration.from_raw(item) for item in features]
        suites = data.get("suites") or []
        if not isinstance(suites, list) or not all(isinstance(item, str) for item in suites):
            raise ValidationError("`suites` must be a list of `module:function` strings")
        config.suites = list(suites)
        return config


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"`{name}` must be a positive integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"`{name}` must be a positive integer") from exc
    if parsed <= 0:
        raise ValidationError(f"`{name}` must be a positive integer")
    return parsed


def _timeout(value: Any) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("`test_timeout_seconds` must be a number") from exc
    # Zero or negative disables the per-test timeout.
    return parsed if parsed > 0 else None


def _bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise ValidationError(f"`{name}` must be a boolean")


def _load_yaml(path: Path) -> dict[str, Any]:
    import yaml

    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValidationError(f"Invalid YAML in config file: {path}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValidationError(f"Config file must be a mapping: {path}")
    return loaded


def apply_env_overrides(config: FeatureCheckConfig, environ: Mapping[str, str] | None = None) -> FeatureCheckConfig:
    env = os.environ if environ is None else environ
    updated = replace(config)

    raw = env.get(ENV_LOG_CAPACITY, "").strip()
    if raw:
        try:
            updated.log_capacity = _positive_int(raw, "log_capacity")
        except ValidationError:
            pass
    raw = env.get(ENV_API_RESULT_CAPACITY, "").strip()
    if raw:
        try:
            updated.api_result_capacity = _positive_int(raw, "api_result_capacity")
        except ValidationError:
            pass
    raw = env.get(ENV_TEST_TIMEOUT, "").strip()
    if raw:
        try:
            updated.test_timeout_seconds = _timeout(raw)
        except ValidationError:
            pass
    raw = env.get(ENV_MIN_LEVEL, "").strip()
    if raw:
        try:
            updated.min_level = LogLevel.parse(raw)
        except ValidationError:
            pass
    raw = env.get(ENV_ECHO, "").strip()
    if raw:
        try:
            updated.echo = _bool(raw, "echo")
        except ValidationError:
            pass
    raw = env.get(ENV_STATE_PATH, "").strip()
    if raw:
        updated.state_path = Path(raw)
    raw = env.get(ENV_API_BASE_URL, "").strip()
    if raw:
        updated.api_base_url = raw
    return updated


def load_config(
    path: Path | None = None,
    project_root: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> FeatureCheckConfig:
    if path is not None and not path.exists():
        raise ValidationError(f"Config file not found: {path}")
    candidate = path if path is not None else (project_root or Path(".")) / CONFIG_FILENAME
    config = FeatureCheckConfig()
    if candidate.exists():
        config = FeatureCheckConfig.from_mapping(_load_yaml(candidate), base_dir=candidate.resolve().parent)
    return apply_env_overrides(config, environ)


__all__ = [
    "ENV_API_BASE_URL",
    "ENV_API_RESULT_CAPACITY",
    "ENV_ECHO",
    "ENV_LOG_CAPACITY",
    "ENV_MIN_LEVEL",
    "ENV_STATE_PATH",
    "ENV_TEST_TIMEOUT",
    "FeatureCheckConfig",
    "FeatureDeclaration",
    "apply_env_overrides",
    "load_config",
]
