from featurecheck.plugins.interfaces import SuiteLoader
from featurecheck.plugins.loader import load_suites, resolve_suite

__all__ = ["SuiteLoader", "load_suites", "resolve_suite"]
