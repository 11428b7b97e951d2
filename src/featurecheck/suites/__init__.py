"""Bundled test suites, loadable with ``--suite featurecheck.suites.<name>:register``."""
