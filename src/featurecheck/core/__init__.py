"""featurecheck core: log store, tracer, test runner, feature mapping and status.

This package contains all verification logic: the bounded log store, execution
context tracing, the dependency-aware test runner, the feature/test mapping
engine and the status aggregator.  It has **no** dependency on typer or any
CLI framework.
"""
from __future__ import annotations
