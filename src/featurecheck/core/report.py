from __future__ import annotations

from collections.abc import Iterable

from featurecheck.core.models import (
    ApiTestResult,
    EnhancedFeatureStatus,
    FeatureTestResult,
    RunStatus,
    utc_now,
)


def _cell(value: object) -> str:
    text = "" if value is None else str(value)
    return text.replace("|", "\\|").replace("\n", " ")


def _duration(value: float | None) -> str:
    return f"{value:.2f}ms" if value is not None else "-"


def render_test_report(results: Iterable[FeatureTestResult]) -> str:
    rows = list(results)
    counts = {status: 0 for status in RunStatus}
    for result in rows:
        counts[result.status] += 1

    lines: list[str] = []
    lines.append("# Feature Test Report")
    lines.append("")
    lines.append(f"Generated: {utc_now().isoformat()}")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Total tests: **{len(rows)}**")
    lines.append(f"- Passed: **{counts[RunStatus.PASSED]}**")
    lines.append(f"- Failed: **{counts[RunStatus.FAILED]}**")
    lines.append(f"- Skipped: **{counts[RunStatus.SKIPPED]}**")
    lines.append("")
    lines.append("## Results")
    lines.append("")
    if not rows:
        lines.append("No tests have been run yet.")
    else:
        lines.append("| ID | Name | Status | Duration | Error |")
        lines.append("|---|---|---|---:|---|")
        for result in rows:
            lines.append(
                f"| {_cell(result.id)} | {_cell(result.name)} | {result.status.value} "
                f"| {_duration(result.duration)} | {_cell(result.error) or '-'} |"
            )
    lines.append("")
    return "\n".join(lines)


def render_api_test_report(results: Iterable[ApiTestResult]) -> str:
    rows = list(results)
    successful = sum(1 for result in rows if result.success)
    failed = len(rows) - successful
    success_rate = f"{successful / len(rows) * 100:.2f}%" if rows else "N/A"

    lines: list[str] = []
    lines.append("# API Test Report")
    lines.append("")
    lines.append(f"Generated: {utc_now().isoformat()}")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Total tests: {len(rows)}")
    lines.append(f"- Successful: {successful}")
    lines.append(f"- Failed: {failed}")
    lines.append(f"- Success rate: {success_rate}")
    lines.append("")
    lines.append("## Test Results")
    lines.append("")
    if not rows:
        lines.append("No tests have been run yet.")
    else:
        lines.append("| Endpoint | Method | Status | Success | Duration (ms) |")
        lines.append("|----------|--------|--------|---------|---------------|")
        for result in rows:
            mark = "✓" if result.success else "✗"
            lines.append(
                f"| {_cell(result.endpoint)} | {result.method} | {result.status} | {mark} | {result.duration:.2f} |"
            )
    lines.append("")
    return "\n".join(lines)


def render_feature_status(features: Iterable[EnhancedFeatureStatus]) -> str:
    rows = list(features)
    lines: list[str] = []
    lines.append("# Feature Status")
    lines.append("")
    if not rows:
        lines.append("No features registered.")
        lines.append("")
        return "\n".join(lines)
    lines.append("| Feature | Implemented | Test Status | Passed | Failed | Skipped | Last Tested |")
    lines.append("|---|---|---|---:|---:|---:|---|")
    for feature in rows:
        last_tested = feature.last_tested.isoformat() if feature.last_tested else "-"
        lines.append(
            f"| {_cell(feature.name)} | {'yes' if feature.implemented else 'no'} "
            f"| {feature.test_status.value} | {feature.summary.passed} | {feature.summary.failed} "
            f"| {feature.summary.skipped} | {last_tested} |"
        )
    lines.append("")
    return "\n".join(lines)


__all__ = ["render_api_test_report", "render_feature_status", "render_test_report"]
