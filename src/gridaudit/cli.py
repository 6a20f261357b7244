"""Command-line interface for gridaudit."""

from __future__ import annotations

import json
from pathlib import Path

import click

from gridaudit import __version__


@click.group()
@click.version_option(version=__version__, prog_name="gridaudit")
def main() -> None:
    """gridaudit -- formula-consistency audit for financial models."""


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--sheet", "sheets", multiple=True, help="Audit only this sheet (repeatable, in order).")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Config file or directory.")
@click.option("--json", "as_json", is_flag=True, help="Output the full run as JSON.")
@click.option("--issues-csv", "issues_csv", default=None, type=click.Path(), help="Write the issue table to a CSV file.")
@click.option("--log-dir", "log_dir", default=None, type=click.Path(), help="Write NDJSON audit events here.")
def audit(
    path: str,
    sheets: tuple[str, ...],
    config_path: str | None,
    as_json: bool,
    issues_csv: str | None,
    log_dir: str | None,
) -> None:
    """Audit the workbook at PATH (.xlsx or workbook .yaml)."""
    from gridaudit.config import load_config
    from gridaudit.errors import ConfigError
    from gridaudit.logging import set_log_dir
    from gridaudit.runner import audit_workbook

    try:
        settings = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        raise click.ClickException(str(e))

    set_log_dir(log_dir)
    run = audit_workbook(Path(path), list(sheets) or None, settings)

    if issues_csv:
        from gridaudit.export import write_issues_csv

        write_issues_csv(run, Path(issues_csv))

    if as_json:
        click.echo(json.dumps(run.to_dict(), indent=2))
    else:
        for r in run.results:
            c = r.counts
            click.echo(
                f"  {r.sheet_name:30s} hardcode={c['hardcode']:<5d} "
                f"break={c['break']:<5d} error={c['error']:<5d}"
            )
        for name in run.skipped_sheets:
            click.echo(f"  {name:30s} skipped")
        bad_names = [n.name for n in run.named_ranges if not n.is_valid]
        if bad_names:
            click.echo(f"Broken named ranges: {', '.join(bad_names)}")
        total = sum(run.counts.values())
        click.echo(f"Issues: {total} ({len(run.issues)} listed, {run.dropped_issues} over cap)")

    if not run.ok:
        raise click.ClickException(f"Audit failed: {run.error}")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command()
@click.argument("log_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--run", "run_id", default=None, help="Show the full log of one run.")
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]))
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--limit", default=50, show_default=True, type=int)
@click.option("--runs", "list_runs", is_flag=True, help="List run ids that have a log.")
@click.option("--json", "as_json", is_flag=True, help="Output events as JSON.")
def events(
    log_dir: str,
    run_id: str | None,
    level: str | None,
    event_type: str | None,
    limit: int,
    list_runs: bool,
    as_json: bool,
) -> None:
    """Show audit events recorded under LOG_DIR."""
    from gridaudit.logging.sink import EventSink

    sink = EventSink(Path(log_dir))
    if list_runs:
        for rid in sink.list_runs():
            click.echo(rid)
        return

    if run_id:
        rows = sink.read_run_log(run_id)
        if level:
            rows = [e for e in rows if e.get("level") == level]
        if event_type:
            rows = [e for e in rows if e.get("event_type") == event_type]
    else:
        rows = sink.read_global(level=level, event_type=event_type, limit=limit)

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return
    for e in rows:
        code = f" [{e['error_code']}]" if e.get("error_code") else ""
        click.echo(f"{e.get('ts', '')}  {e.get('level', ''):7s} {e.get('event_type', '')}{code}  {e.get('message', '')}")


# ---------------------------------------------------------------------------
# Shape
# ---------------------------------------------------------------------------


@main.command()
@click.argument("formula")
@click.option("--cell", "cell_addr", required=True, help="Host cell address, e.g. C5.")
def shape(formula: str, cell_addr: str) -> None:
    """Print the relative-reference shape of FORMULA hosted at --cell."""
    from gridaudit.formulas.shape import to_r1c1
    from gridaudit.grid import parse_addr

    try:
        row, col = parse_addr(cell_addr)
    except ValueError as e:
        raise click.ClickException(str(e))
    if not formula.startswith("="):
        formula = "=" + formula
    click.echo(to_r1c1(formula, row + 1, col + 1))
