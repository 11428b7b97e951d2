"""Allow-listed debug queries.

A query is a bare function name from :class:`QueryKind`, optionally called
with at most one quoted string literal, e.g. ``getTestsForFeature("goal-creation")``.
Queries are parsed, never evaluated.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from featurecheck.core.errors import ValidationError


class QueryKind(str, Enum):
    FEATURE_VERIFICATION_STATUS = "getFeatureVerificationStatus"
    ENHANCED_FEATURES = "getEnhancedFeatures"
    ENHANCED_FEATURE = "getEnhancedFeature"
    FEATURE_TESTS = "getFeatureTests"
    TESTS_FOR_FEATURE = "getTestsForFeature"
    TEST_RESULTS = "getTestResults"
    LOGS = "getLogs"
    API_TEST_RESULTS = "getApiTestResults"
    EXPORT_DEBUG_DATA = "exportDebugData"
    TEST_REPORT = "generateTestReport"
    RUN_FEATURE_TEST = "runFeatureTest"
    RUN_ALL_FEATURE_TESTS = "runAllFeatureTests"


ARGUMENT_KINDS = frozenset(
    {
        QueryKind.ENHANCED_FEATURE,
        QueryKind.TESTS_FOR_FEATURE,
        QueryKind.RUN_FEATURE_TEST,
    }
)

_QUERY_PATTERN = re.compile(
    r"""^\s*(?P<name>[A-Za-z]+)\s*
    (?:\(\s*(?:(?P<quote>["'])(?P<arg>[^"'\\]*)(?P=quote))?\s*\))?
    \s*;?\s*$""",
    re.VERBOSE,
)
_MAX_QUERY_LENGTH = 256


@dataclass(slots=True, frozen=True)
class DebugQuery:
    kind: QueryKind
    argument: str | None = None


def supported_queries() -> list[str]:
    return [kind.value for kind in QueryKind]


def parse_query(text: str) -> DebugQuery:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Missing query", details={"supported": supported_queries()})
    if len(text) > _MAX_QUERY_LENGTH:
        raise ValidationError("Query is too long", details={"max_length": _MAX_QUERY_LENGTH})

    match = _QUERY_PATTERN.match(text)
    if match is None:
        raise ValidationError(f"Unsupported query syntax: {text!r}", details={"supported": supported_queries()})
    try:
        kind = QueryKind(match.group("name"))
    except ValueError as exc:
        raise ValidationError(
            f"Unsupported query: {match.group('name')}",
            details={"supported": supported_queries()},
        ) from exc

    argument = match.group("arg")
    if kind in ARGUMENT_KINDS:
        if not argument:
            raise ValidationError(f"{kind.value} requires one quoted argument")
    elif argument is not None:
        raise ValidationError(f"{kind.value} takes no arguments")
    return DebugQuery(kind=kind, argument=argument)


__all__ = ["ARGUMENT_KINDS", "DebugQuery", "QueryKind", "parse_query", "supported_queries"]
