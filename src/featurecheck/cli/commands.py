from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import typer

from featurecheck.config import load_config
from featurecheck.core.constants import (
    DEFAULT_CLI_LOG_LIMIT,
    DEFAULT_STATE_PATH,
    EXIT_FAILURE,
    EXIT_INTERNAL_ERROR,
    EXIT_SUCCESS,
)
from featurecheck.core.errors import FeatureCheckError, NotFoundError, ValidationError
from featurecheck.core.models import RunStatus
from featurecheck.core.report import render_feature_status
from featurecheck.core.service import DebugService
from featurecheck.plugins import load_suites


@dataclass(slots=True)
class _CliOptions:
    config_path: Path | None = None
    state_path: Path | None = None
    suites: list[str] = field(default_factory=list)
    verbose: bool = False


def _version_callback(value: bool) -> None:
    if value:
        from featurecheck import __version__

        typer.echo(f"featurecheck {__version__}")
        raise typer.Exit()


app = typer.Typer(add_completion=False, help="Feature verification and debug tracing")


@app.callback(invoke_without_command=True)
def _main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Path to featurecheck.yaml"),
    suite: list[str] | None = typer.Option(
        None,
        "--suite",
        help="Suite loader as module:function (repeatable)",
    ),
    state: Path | None = typer.Option(None, "--state", help="JSON file holding persisted debug data"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Mirror debug logs to stderr."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Print version and exit."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = _CliOptions(config_path=config, state_path=state, suites=list(suite or []), verbose=verbose)


def _fail(message: str, code: int) -> typer.Exit:
    typer.echo(f"ERROR: {message}", err=True)
    return typer.Exit(code)


def _service(ctx: typer.Context) -> DebugService:
    options: _CliOptions = ctx.obj or _CliOptions()
    try:
        config = load_config(options.config_path)
        if options.state_path is not None:
            config.state_path = options.state_path
        elif config.state_path is None:
            config.state_path = DEFAULT_STATE_PATH
        if options.verbose:
            config.echo = True
        service = DebugService(config)
        load_suites(service, [*config.suites, *options.suites])
    except FeatureCheckError as exc:
        raise _fail(exc.message, EXIT_INTERNAL_ERROR) from exc
    return service


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@app.command()
def features(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of Markdown"),
) -> None:
    """Show enhanced status for every known feature."""
    service = _service(ctx)
    if as_json:
        _echo_json(service.list_features())
    else:
        stats = service.list_features()["stats"]
        typer.echo(render_feature_status(service.get_enhanced_features()))
        typer.echo(
            f"{stats['total']} features: {stats['implemented']} implemented, "
            f"{stats['tested']} tested, {stats['complete']} complete"
        )
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def feature(ctx: typer.Context, name: str = typer.Argument(..., help="Feature name")) -> None:
    """Show one feature with its related tests and recent logs."""
    service = _service(ctx)
    try:
        detail = service.get_feature_detail(name)
    except NotFoundError as exc:
        raise _fail(f"{exc}. Run `featurecheck features` to list known features.", EXIT_FAILURE) from exc
    _echo_json(detail)
    raise typer.Exit(EXIT_SUCCESS)


@app.command("tests")
def list_tests(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a plain listing"),
) -> None:
    """List registered tests with their last status and mapped feature."""
    service = _service(ctx)
    listing = service.list_tests()
    if as_json:
        _echo_json(listing)
        raise typer.Exit(EXIT_SUCCESS)
    if not listing["tests"]:
        typer.echo("No feature tests registered. Pass --suite module:function to load some.")
    for test in listing["tests"]:
        typer.echo(f"{test['id']}\t{test['status']}\t{test['featureName']}")
    raise typer.Exit(EXIT_SUCCESS)


@app.command("test")
def run_test(ctx: typer.Context, test_id: str = typer.Argument(..., help="Test id")) -> None:
    """Run one test; exits non-zero unless it passes."""
    service = _service(ctx)
    result = asyncio.run(service.run_test(test_id))
    line = f"{result.id}: {result.status.value}"
    if result.duration is not None:
        line += f" ({result.duration:.2f}ms)"
    typer.echo(line)
    if result.error:
        typer.echo(f"  {result.error}")
    raise typer.Exit(EXIT_SUCCESS if result.status is RunStatus.PASSED else EXIT_FAILURE)


@app.command("test-all")
def run_all(ctx: typer.Context) -> None:
    """Run every registered test in dependency order."""
    service = _service(ctx)
    summary = asyncio.run(service.run_all_tests())
    typer.echo(service.generate_test_report())
    typer.echo(
        f"{summary.passed} passed, {summary.failed} failed, {summary.skipped} skipped "
        f"in {summary.duration_ms:.2f}ms"
    )
    raise typer.Exit(EXIT_SUCCESS if summary.ok else EXIT_FAILURE)


@app.command()
def report(
    ctx: typer.Context,
    output: Path | None = typer.Option(None, "--output", help="Write the report to this file"),
) -> None:
    """Print the Markdown report of the latest test results."""
    service = _service(ctx)
    content = service.generate_test_report()
    if output is None:
        typer.echo(content)
        raise typer.Exit(EXIT_SUCCESS)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise _fail(f"Cannot write report to {output}: {exc}", EXIT_INTERNAL_ERROR) from exc
    typer.echo(f"Report written to: {output}")
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def logs(
    ctx: typer.Context,
    level: str | None = typer.Option(None, "--level", help="Minimum level: debug | info | warn | error"),
    area: str | None = typer.Option(None, "--area", help="Only this feature area"),
    from_date: str | None = typer.Option(None, "--from", help="ISO date or timestamp lower bound"),
    to_date: str | None = typer.Option(None, "--to", help="ISO date or timestamp upper bound"),
    limit: int = typer.Option(DEFAULT_CLI_LOG_LIMIT, "--limit", min=0, help="Maximum entries to print"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON entries"),
) -> None:
    """Print persisted log entries, newest first."""
    service = _service(ctx)
    try:
        entries = service.fetch_logs(level=level, area=area, from_date=from_date, to_date=to_date, limit=limit)
    except ValidationError as exc:
        raise _fail(exc.message, EXIT_FAILURE) from exc
    if as_json:
        _echo_json([entry.to_dict() for entry in entries])
        raise typer.Exit(EXIT_SUCCESS)
    for entry in entries:
        typer.echo(f"{entry.timestamp.isoformat()} [{entry.level.name}] [{entry.area}] {entry.message}")
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def query(ctx: typer.Context, text: str = typer.Argument(..., help='e.g. getTestsForFeature("goal-creation")')) -> None:
    """Run one allow-listed debug query and print its JSON result."""
    service = _service(ctx)
    try:
        payload = asyncio.run(service.query(text))
    except ValidationError as exc:
        supported = exc.details.get("supported")
        if supported:
            typer.echo(f"Supported queries: {', '.join(supported)}", err=True)
        raise _fail(exc.message, EXIT_FAILURE) from exc
    except NotFoundError as exc:
        raise _fail(str(exc), EXIT_FAILURE) from exc
    _echo_json(payload)
    raise typer.Exit(EXIT_SUCCESS)


@app.command("export")
def export_data(ctx: typer.Context, path: Path = typer.Argument(..., help="Destination JSON file")) -> None:
    """Write logs and results to a JSON file."""
    service = _service(ctx)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(service.store.export_json(), encoding="utf-8")
    except OSError as exc:
        raise _fail(f"Cannot write export to {path}: {exc}", EXIT_INTERNAL_ERROR) from exc
    typer.echo(f"Exported {len(service.store)} log entries to: {path}")
    raise typer.Exit(EXIT_SUCCESS)


@app.command("import")
def import_data(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, help="Exported JSON file"),
) -> None:
    """Replace persisted logs and results with a previous export."""
    service = _service(ctx)
    if not service.import_debug_data(path.read_text(encoding="utf-8")):
        raise _fail(f"Invalid debug data in {path}", EXIT_FAILURE)
    typer.echo(f"Imported {len(service.store)} log entries from: {path}")
    raise typer.Exit(EXIT_SUCCESS)
