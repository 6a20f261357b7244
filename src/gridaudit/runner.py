"""Audit orchestration.

A run audits sheets strictly one at a time, in the order supplied::

    run = await run_audit(provider, ["P&L", "Balance Sheet"])
    run.counts      # {"hardcode": 12, "break": 3, "error": 1}
    run.issues      # capped, in scan order

Per sheet: detect the period axis and total columns once, then for every
labelled row resolve the dominant formula pattern and classify each cell of
the audit zone left to right.  Issues past the cap are counted but not
stored.

Failure policy:

- a sheet that fails to load (or has no data) is skipped and logged;
- a failure to list sheets fails the run before anything is audited;
- any other error aborts the run, keeping results of completed sheets.

``run_audit`` records failures on the returned ``AuditRun`` (state
``failed`` plus ``error``) rather than raising.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from gridaudit.classify import CellStatus, classify_cell
from gridaudit.config import AuditSettings
from gridaudit.detect import detect_axis, detect_total_columns
from gridaudit.formulas.diagnostics import (
    complexity_score,
    shifted_reference,
    volatile_functions,
)
from gridaudit.grid import Cell, SheetGrid, make_addr
from gridaudit.labels import resolve_row_label, safe_trim
from gridaudit.logging.events import (
    AUDIT_COMPUTE_FAILED,
    NAMED_RANGE_REF_ERROR,
    SHEET_LIST_UNAVAILABLE,
    SHEET_LOAD_FAILED,
    SHEET_NO_DATA,
    EventLevel,
    EventType,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    make_sheet_event,
)
from gridaudit.models import (
    ISSUE_KINDS,
    CellMark,
    Issue,
    IssueKind,
    NamedRangeInfo,
    RowAudit,
    SheetAuditResult,
)
from gridaudit.patterns import dominant_pattern
from gridaudit.providers import GridProvider, SpecGridProvider, XlsxGridProvider
from gridaudit.values import describe_error, recommend_for_error

log = logging.getLogger(__name__)


class RunState(str, Enum):
    idle = "idle"
    selecting_sheets = "selecting_sheets"
    auditing = "auditing"
    building_summary = "building_summary"
    done = "done"
    failed = "failed"


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _new_run_id() -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{ts}_{uuid.uuid4().hex[:8]}"


# ---------------------------------------------------------------------------
# AuditRun
# ---------------------------------------------------------------------------


class AuditRun:
    """Mutable state of one audit run.

    Created fresh for every run and owned by it; nothing is shared between
    runs.

    Attributes:
        run_id: Unique id, also used for the per-run event log.
        settings: Settings the run was started with.
        state: Current ``RunState``.
        issues: Stored issues in scan order, at most ``settings.max_issues``.
        dropped_issues: Issues counted but not stored because of the cap.
        results: Per-sheet results, in audit order.
        skipped_sheets: Names of sheets that failed to load or had no data.
        counts: Uncapped issue counts across all audited sheets.
        named_ranges: Defined names checked for broken targets.
        error: Failure message when ``state`` is ``failed``.
    """

    def __init__(self, settings: AuditSettings | None = None) -> None:
        self.run_id = _new_run_id()
        self.settings = settings or AuditSettings()
        self.state = RunState.idle
        self.issues: list[Issue] = []
        self.dropped_issues = 0
        self.results: list[SheetAuditResult] = []
        self.skipped_sheets: list[str] = []
        self.counts: dict[str, int] = {"hardcode": 0, "break": 0, "error": 0}
        self.named_ranges: list[NamedRangeInfo] = []
        self.error: str | None = None
        self.started_at: str | None = None
        self.finished_at: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is RunState.done

    @property
    def cap_reached(self) -> bool:
        return self.dropped_issues > 0

    def add_issue(self, issue: Issue) -> bool:
        """Store *issue* unless the cap is reached.  Returns True if stored."""
        if len(self.issues) < self.settings.max_issues:
            self.issues.append(issue)
            return True
        self.dropped_issues += 1
        if self.dropped_issues == 1:
            emit_warning(
                EventType.issue_cap_reached,
                f"Issue cap of {self.settings.max_issues} reached; further issues are counted only",
                {"run_id": self.run_id, "max_issues": self.settings.max_issues},
                run_id=self.run_id,
            )
        return False

    def issue_counts_by_kind(self) -> dict[str, int]:
        """Counts of the stored (capped) issues per kind."""
        out = {k.value: 0 for k in IssueKind}
        for issue in self.issues:
            out[issue.kind.value] += 1
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "error": self.error,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "counts": dict(self.counts),
            "issues_stored": len(self.issues),
            "issues_dropped": self.dropped_issues,
            "skipped_sheets": list(self.skipped_sheets),
            "sheets": [r.model_dump(mode="json") for r in self.results],
            "issues": [i.model_dump(mode="json") for i in self.issues],
            "named_ranges": [n.model_dump(mode="json") for n in self.named_ranges],
        }


# ---------------------------------------------------------------------------
# Sheet audit
# ---------------------------------------------------------------------------


def _make_issue(
    status: CellStatus,
    sheet_name: str,
    addr: str,
    cell: Cell,
    dominant: str,
    settings: AuditSettings,
) -> Issue:
    kind = ISSUE_KINDS[status]
    if kind is IssueKind.error:
        code = cell.value.raw
        return Issue(
            kind=kind,
            sheet_name=sheet_name,
            cell_address=addr,
            actual_text=code.value,
            expected_text=safe_trim(cell.formula or "", settings.formula_display_chars),
            description=describe_error(code),
            recommendation=recommend_for_error(code),
        )
    if kind is IssueKind.hardcode:
        return Issue(
            kind=kind,
            sheet_name=sheet_name,
            cell_address=addr,
            actual_text=safe_trim(cell.value.display(), settings.value_display_chars),
            expected_text=dominant or "formula",
            description="Constant value in formula area",
            recommendation="Consider using formula or input reference",
        )
    return Issue(
        kind=kind,
        sheet_name=sheet_name,
        cell_address=addr,
        actual_text=safe_trim(cell.formula or "", settings.formula_display_chars),
        expected_text=dominant,
        description="Formula pattern differs from the row's dominant pattern",
        recommendation="Verify this is intentional",
    )


def _diagnose(formula: str, col: int, result: SheetAuditResult, settings: AuditSettings) -> None:
    if volatile_functions(formula):
        result.volatile_cells += 1
    if complexity_score(formula) >= settings.complexity_threshold:
        result.complex_cells += 1
    if shifted_reference(formula, col):
        result.shifted_cells += 1


def audit_sheet(grid: SheetGrid, run: AuditRun) -> SheetAuditResult:
    """Audit one sheet grid into *run*.

    Appends the sheet result to ``run.results``, its issues to
    ``run.issues`` (subject to the cap) and adds its counts to
    ``run.counts``.

    Returns:
        The sheet's result.
    """
    s = run.settings
    axis = detect_axis(grid, s.axis_scan_rows)
    if axis.found:
        start = axis.col - 1
        totals = detect_total_columns(grid, axis.row - 1, start, axis.end_col - 1)
    else:
        start = s.fallback_start_col - 1
        totals = {}

    result = SheetAuditResult(
        sheet_name=grid.name,
        axis=axis,
        total_columns=sorted(c + 1 for c in totals),
    )
    zone = range(start, grid.n_cols)

    for r in range(grid.n_rows):
        label = resolve_row_label(grid, r, s.label_columns, s.label_max_chars)
        if not label:
            continue
        cells = grid.row(r)
        dominant = dominant_pattern(
            (cells[c].shape for c in zone if not totals.get(c, False)),
            s.min_formulas_for_dominant,
            s.dominant_share,
        )

        row_audit = RowAudit(row=r + 1, label=label, dominant_pattern=dominant)
        for c in zone:
            cell = cells[c]
            status = classify_cell(
                cell.value, cell.formula, cell.shape, dominant, totals.get(c, False)
            )
            if status is CellStatus.empty:
                continue
            addr = make_addr(r, c)
            row_audit.marks.append(CellMark(column=c + 1, address=addr, status=status))
            result.record(status)
            if cell.is_formula:
                result.formula_cells += 1
                _diagnose(cell.formula, c + 1, result, s)
            if status in ISSUE_KINDS:
                run.add_issue(_make_issue(status, grid.name, addr, cell, dominant, s))
        result.rows.append(row_audit)

    run.results.append(result)
    for key, n in result.counts.items():
        run.counts[key] += n

    emit(
        make_sheet_event(
            EventType.sheet_audited,
            EventLevel.info,
            f"Audited {grid.name}: {result.issue_count} issue(s)",
            run_id=run.run_id,
            sheet_name=grid.name,
            extra={"counts": dict(result.counts), "axis": axis.model_dump()},
        ),
        run_id=run.run_id,
    )
    return result


# ---------------------------------------------------------------------------
# Run orchestration
# ---------------------------------------------------------------------------


async def _select_sheets(
    provider: GridProvider,
    sheet_names: list[str] | None,
    settings: AuditSettings,
) -> list[str]:
    if sheet_names is not None:
        return list(sheet_names)
    names = await provider.list_sheets()
    return [n for n in names if not settings.is_reserved_sheet(n)]


def _skip_sheet(run: AuditRun, sheet_name: str, message: str, error_code: str) -> None:
    log.warning("Skipping sheet %r: %s", sheet_name, message)
    run.skipped_sheets.append(sheet_name)
    emit(
        make_sheet_event(
            EventType.sheet_skipped,
            EventLevel.warning,
            message,
            run_id=run.run_id,
            sheet_name=sheet_name,
            error_code=error_code,
        ),
        run_id=run.run_id,
    )


async def _load_grid(provider: GridProvider, sheet_name: str, run: AuditRun) -> SheetGrid | None:
    try:
        grid = await provider.load_grid(sheet_name)
    except Exception as exc:
        _skip_sheet(run, sheet_name, str(exc), SHEET_LOAD_FAILED)
        return None
    if grid is None:
        _skip_sheet(run, sheet_name, f"Sheet {sheet_name!r} has no data", SHEET_NO_DATA)
    return grid


async def _audit_named_ranges(provider: GridProvider, run: AuditRun) -> None:
    fetch = getattr(provider, "defined_names", None)
    if fetch is None:
        return
    try:
        names = await fetch()
    except Exception as exc:
        log.warning("Defined names unavailable: %s", exc)
        return
    for name, target in names.items():
        info = NamedRangeInfo(name=name, refers_to=target, is_valid="#REF!" not in target.upper())
        run.named_ranges.append(info)
        if not info.is_valid:
            emit_warning(
                EventType.named_range_invalid,
                f"Named range {name!r} refers to #REF!",
                {"run_id": run.run_id, "name": name, "refers_to": target},
                error_code=NAMED_RANGE_REF_ERROR,
                run_id=run.run_id,
            )


def _fail(run: AuditRun, exc: Exception, error_code: str) -> AuditRun:
    run.state = RunState.failed
    run.error = str(exc) or exc.__class__.__name__
    run.finished_at = _utc_now()
    log.error("Audit run %s failed: %s", run.run_id, run.error)
    emit_error(
        EventType.run_failed,
        run.error,
        {"run_id": run.run_id, "sheets_completed": len(run.results)},
        error_code=error_code,
        run_id=run.run_id,
    )
    return run


def _complete(run: AuditRun) -> AuditRun:
    run.state = RunState.done
    run.finished_at = _utc_now()
    emit_info(
        EventType.run_completed,
        f"Audit complete: {len(run.issues)} issue(s) stored, {run.dropped_issues} dropped",
        {
            "run_id": run.run_id,
            "counts": dict(run.counts),
            "sheets_audited": len(run.results),
            "sheets_skipped": len(run.skipped_sheets),
        },
        run_id=run.run_id,
    )
    return run


async def run_audit(
    provider: GridProvider,
    sheet_names: list[str] | None = None,
    settings: AuditSettings | None = None,
) -> AuditRun:
    """Audit sheets from *provider* one after another.

    Args:
        provider: Source of sheet names and grids.
        sheet_names: Sheets to audit, in order.  ``None`` audits every sheet
            the provider lists, minus reserved audit-output sheets.
        settings: Audit settings; defaults when omitted.

    Returns:
        The finished run.  Check ``run.state`` / ``run.ok``: failures are
        recorded on the run, not raised.
    """
    run = AuditRun(settings)
    run.started_at = _utc_now()
    emit_info(EventType.run_started, "Audit started", {"run_id": run.run_id}, run_id=run.run_id)

    run.state = RunState.selecting_sheets
    try:
        names = await _select_sheets(provider, sheet_names, run.settings)
    except Exception as exc:
        return _fail(run, exc, SHEET_LIST_UNAVAILABLE)

    run.state = RunState.auditing
    try:
        await _audit_named_ranges(provider, run)
        for name in names:
            grid = await _load_grid(provider, name, run)
            if grid is None:
                continue
            audit_sheet(grid, run)
        run.state = RunState.building_summary
    except Exception as exc:
        return _fail(run, exc, AUDIT_COMPUTE_FAILED)

    return _complete(run)


def audit_grid(grid: SheetGrid, settings: AuditSettings | None = None) -> AuditRun:
    """Audit a single in-memory grid as a run of its own.

    Used for a selected range or any grid built without a workbook, so sheet
    selection and the named-range check are skipped.  Like ``run_audit``, an
    error is recorded on the returned run rather than raised.
    """
    run = AuditRun(settings)
    run.started_at = _utc_now()
    emit_info(EventType.run_started, "Audit started", {"run_id": run.run_id}, run_id=run.run_id)
    run.state = RunState.auditing
    try:
        audit_sheet(grid, run)
    except Exception as exc:
        return _fail(run, exc, AUDIT_COMPUTE_FAILED)
    run.state = RunState.building_summary
    return _complete(run)


def open_provider(path: Path, settings: AuditSettings | None = None) -> GridProvider:
    """Pick a provider for a workbook file by extension (.xlsx/.xlsm or .yaml/.yml)."""
    settings = settings or AuditSettings()
    suffix = Path(path).suffix.lower()
    if suffix in (".yaml", ".yml"):
        return SpecGridProvider.from_yaml(path)
    return XlsxGridProvider(path, max_rows=settings.max_rows, max_cols=settings.max_cols)


def audit_workbook(
    source: GridProvider | Path | str,
    sheet_names: list[str] | None = None,
    settings: AuditSettings | None = None,
) -> AuditRun:
    """Synchronous entry point: audit a provider or a workbook file."""
    if isinstance(source, (str, Path)):
        provider = open_provider(Path(source), settings)
    else:
        provider = source
    try:
        return asyncio.run(run_audit(provider, sheet_names, settings))
    finally:
        close = getattr(provider, "close", None)
        if close is not None and provider is not source:
            close()
