"""CLI smoke tests: run suites, read reports, query and move debug data."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from featurecheck.cli import app

runner = CliRunner()

SELFCHECK = "featurecheck.suites.selfcheck:register"


def _write_file(path: Path, content: str) -> None:
    path.write_text(content.strip() + "\n", encoding="utf-8")


@pytest.fixture
def failing_suite(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    _write_file(
        tmp_path / "failing_checks.py",
        """
from featurecheck.core.models import FeatureTest


def _explode(context_id):
    raise RuntimeError("widget exploded")


def register(service):
    service.register_feature_test(
        FeatureTest(id="widget", name="Widget", description="", area="ui", test=_explode)
    )
    service.register_feature_test(
        FeatureTest(
            id="widget-child",
            name="Widget child",
            description="",
            area="ui",
            test=lambda context_id: True,
            dependencies=("widget",),
        )
    )
""",
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    return "failing_checks:register"


def _invoke(state: Path, *args: str):
    return runner.invoke(app, ["--state", str(state), *args])


class TestCliSmoke:
    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("features", "feature", "tests", "test-all", "report", "logs", "query", "export", "import"):
            assert command in result.output

    def test_version_flag(self) -> None:
        from featurecheck import __version__

        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == f"featurecheck {__version__}"

    def test_test_all_passes_and_report_persists(self, tmp_path: Path) -> None:
        state = tmp_path / "state.json"

        run = _invoke(state, "--suite", SELFCHECK, "test-all")
        assert run.exit_code == 0
        assert "3 passed, 0 failed, 0 skipped" in run.output
        assert state.exists()

        report = _invoke(state, "report")
        assert report.exit_code == 0
        assert "| enhanced-logger | Enhanced Logger | passed |" in report.output
        assert "| debug-infrastructure | Debug Infrastructure Integration | passed |" in report.output

    def test_report_output_file(self, tmp_path: Path) -> None:
        state = tmp_path / "state.json"
        output = tmp_path / "reports" / "features.md"
        assert _invoke(state, "--suite", SELFCHECK, "test-all").exit_code == 0

        result = _invoke(state, "report", "--output", str(output))

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8").startswith("# Feature Test Report")

    def test_failures_exit_non_zero(self, tmp_path: Path, failing_suite: str) -> None:
        state = tmp_path / "state.json"

        run = _invoke(state, "--suite", failing_suite, "test-all")
        assert run.exit_code == 1
        assert "0 passed, 1 failed, 1 skipped" in run.output
        assert "widget exploded" in run.output

        single = _invoke(state, "--suite", failing_suite, "test", "widget-child")
        assert single.exit_code == 1
        assert "Dependencies not met: widget" in single.output

    def test_single_test(self, tmp_path: Path) -> None:
        state = tmp_path / "state.json"

        ok = _invoke(state, "--suite", SELFCHECK, "test", "feature-tester")
        assert ok.exit_code == 0
        assert ok.output.startswith("feature-tester: passed")

        missing = _invoke(state, "test", "nope")
        assert missing.exit_code == 1
        assert 'Test with ID "nope" not found in registry' in missing.output

    def test_tests_listing(self, tmp_path: Path) -> None:
        state = tmp_path / "state.json"

        empty = _invoke(state, "tests")
        assert empty.exit_code == 0
        assert "No feature tests registered" in empty.output

        listing = _invoke(state, "--suite", SELFCHECK, "tests", "--json")
        assert listing.exit_code == 0
        payload = json.loads(listing.output)
        assert [test["id"] for test in payload["tests"]] == ["enhanced-logger", "feature-tester", "debug-infrastructure"]
        assert {test["featureName"] for test in payload["tests"]} == {"Debug Infrastructure"}

    def test_features_and_feature_detail(self, tmp_path: Path) -> None:
        state = tmp_path / "state.json"

        listing = _invoke(state, "features", "--json")
        assert listing.exit_code == 0
        assert json.loads(listing.output)["stats"]["total"] == 9

        table = _invoke(state, "features")
        assert table.exit_code == 0
        assert "| dashboard-stats | no | not_tested |" in table.output

        detail = _invoke(state, "feature", "goal-creation")
        assert detail.exit_code == 0
        assert json.loads(detail.output)["name"] == "goal-creation"

        missing = _invoke(state, "feature", "teleportation")
        assert missing.exit_code == 1
        assert "Feature not found: teleportation" in missing.output

    def test_query_command(self, tmp_path: Path) -> None:
        state = tmp_path / "state.json"

        ok = _invoke(state, "--suite", SELFCHECK, "query", 'getTestsForFeature("Debug Infrastructure")')
        assert ok.exit_code == 0
        payload = json.loads(ok.output)
        assert payload["type"] == "getTestsForFeature"
        assert len(payload["result"]) == 3

        bad = _invoke(state, "query", "require('child_process')")
        assert bad.exit_code == 1
        assert "Supported queries" in bad.output

    def test_logs_command_filters(self, tmp_path: Path) -> None:
        state = tmp_path / "state.json"
        assert _invoke(state, "--suite", SELFCHECK, "test-all").exit_code == 0

        result = _invoke(state, "logs", "--level", "info", "--area", "performance", "--limit", "2", "--json")
        assert result.exit_code == 0
        entries = json.loads(result.output)
        assert len(entries) == 2
        assert all(entry["area"] == "performance" and entry["level"] >= 1 for entry in entries)

        bad = _invoke(state, "logs", "--level", "loud")
        assert bad.exit_code == 1

    def test_export_then_import(self, tmp_path: Path) -> None:
        source_state = tmp_path / "source.json"
        target_state = tmp_path / "target.json"
        exported = tmp_path / "export.json"
        assert _invoke(source_state, "--suite", SELFCHECK, "test-all").exit_code == 0

        export = _invoke(source_state, "export", str(exported))
        assert export.exit_code == 0
        assert json.loads(exported.read_text(encoding="utf-8"))["featureTestResults"]

        imported = _invoke(target_state, "import", str(exported))
        assert imported.exit_code == 0

        report = _invoke(target_state, "report")
        assert "| feature-tester | Feature Tester | passed |" in report.output

    def test_import_rejects_invalid_file(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.json"
        broken.write_text("{\"logs\": 5}", encoding="utf-8")

        result = _invoke(tmp_path / "state.json", "import", str(broken))

        assert result.exit_code == 1
        assert "Invalid debug data" in result.output

    def test_config_and_suite_errors_exit_2(self, tmp_path: Path) -> None:
        config = tmp_path / "featurecheck.yaml"
        _write_file(config, "- not\n- a mapping")

        bad_config = runner.invoke(app, ["--config", str(config), "--state", str(tmp_path / "s.json"), "features"])
        assert bad_config.exit_code == 2

        bad_suite = _invoke(tmp_path / "s.json", "--suite", "no_such_module_anywhere:register", "tests")
        assert bad_suite.exit_code == 2
        assert "Cannot import suite module" in bad_suite.output

    def test_config_file_supplies_suites_and_features(self, tmp_path: Path) -> None:
        config = tmp_path / "featurecheck.yaml"
        _write_file(
            config,
            f"""
register_default_features: false
features:
  - name: debug-core
    area: storage
suites:
  - {SELFCHECK}
""",
        )

        result = runner.invoke(app, ["--config", str(config), "--state", str(tmp_path / "s.json"), "features", "--json"])

        assert result.exit_code == 0
        names = [feature["name"] for feature in json.loads(result.output)["features"]]
        assert names == ["debug-core", "Debug Infrastructure"]
