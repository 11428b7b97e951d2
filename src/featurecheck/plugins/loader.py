from __future__ import annotations

import importlib
from collections.abc import Iterable
from importlib.metadata import entry_points
from typing import Any

from featurecheck.core.constants import SUITE_ENTRY_POINT_GROUP
from featurecheck.core.errors import ValidationError
from featurecheck.core.service import DebugService
from featurecheck.plugins.interfaces import SuiteLoader


def _load_group(group: str) -> list[Any]:
    loaded: list[Any] = []
    for entry in entry_points().select(group=group):
        loaded.append(entry.load())
    return loaded


def resolve_suite(reference: str) -> SuiteLoader:
    """Import a ``package.module:callable`` reference."""
    module_name, separator, attribute = reference.strip().partition(":")
    if not separator or not module_name or not attribute:
        raise ValidationError(f"Suite reference must look like `module:function`, got: {reference!r}")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValidationError(f"Cannot import suite module `{module_name}`: {exc}") from exc
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ValidationError(f"Suite `{reference}` not found") from exc
    if not callable(target):
        raise ValidationError(f"Suite `{reference}` is not callable")
    return target


def load_suites(
    service: DebugService,
    references: Iterable[str] = (),
    *,
    include_entry_points: bool = True,
) -> int:
    """Apply every referenced suite to ``service``; returns how many ran."""
    suites: list[SuiteLoader] = [resolve_suite(reference) for reference in dict.fromkeys(references)]
    if include_entry_points:
        suites.extend(_load_group(SUITE_ENTRY_POINT_GROUP))
    for suite in suites:
        suite(service)
    return len(suites)
