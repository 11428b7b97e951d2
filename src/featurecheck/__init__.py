"""featurecheck: feature verification, test orchestration and debug tracing."""
from __future__ import annotations

from featurecheck.config import FeatureCheckConfig, load_config
from featurecheck.core.errors import FeatureCheckError, NotFoundError, ValidationError
from featurecheck.core.models import FeatureTest, LogLevel, RunStatus
from featurecheck.core.service import DebugService

__version__ = "0.1.0"

__all__ = [
    "DebugService",
    "FeatureCheckConfig",
    "FeatureCheckError",
    "FeatureTest",
    "LogLevel",
    "NotFoundError",
    "RunStatus",
    "ValidationError",
    "__version__",
    "load_config",
]
