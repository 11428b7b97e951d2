from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from featurecheck.core.service import DebugService


class SuiteLoader(Protocol):
    # Suites register their feature tests (and optionally features) on the
    # service they are handed; the return value is ignored.
    def __call__(self, service: DebugService) -> None:
        ...
