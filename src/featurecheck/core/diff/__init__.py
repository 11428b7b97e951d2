from __future__ import annotations

from featurecheck.core.diff.structural import MISSING, find_differences, type_name

__all__ = ["MISSING", "find_differences", "type_name"]
