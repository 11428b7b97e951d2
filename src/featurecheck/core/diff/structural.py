from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

MISSING = "missing"


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return "array"
    return type(value).__name__


def find_differences(expected: Any, actual: Any) -> dict[str, Any]:
    """Describe how ``actual`` departs from ``expected``; empty when they agree.

    Checks run in a fixed order: type, then array shape, then object keys,
    then plain value equality.
    """
    expected_type = type_name(expected)
    actual_type = type_name(actual)
    if expected_type != actual_type:
        return {"type_expected": expected_type, "type_actual": actual_type}

    if expected_type == "array":
        if len(expected) != len(actual):
            return {"length_expected": len(expected), "length_actual": len(actual)}
        differences: dict[str, Any] = {}
        for idx, (left, right) in enumerate(zip(expected, actual, strict=True)):
            nested = find_differences(left, right)
            if nested:
                differences[f"[{idx}]"] = nested
        return differences

    if expected_type == "object":
        differences = {}
        keys = list(expected.keys()) + [key for key in actual.keys() if key not in expected]
        for key in keys:
            label = str(key)
            if key not in actual:
                differences[label] = {"expected": expected[key], "actual": MISSING}
                continue
            if key not in expected:
                differences[label] = {"expected": MISSING, "actual": actual[key]}
                continue
            nested = find_differences(expected[key], actual[key])
            if nested:
                differences[label] = nested
        return differences

    if expected != actual:
        return {"expected": expected, "actual": actual}
    return {}


__all__ = ["MISSING", "find_differences", "type_name"]
