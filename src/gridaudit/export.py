"""Tabular export of audit results as polars DataFrames.

Report builders render these; the engine itself never formats sheets.
"""

from __future__ import annotations

from pathlib import Path

import polars as pl

from gridaudit.runner import AuditRun

_ISSUE_SCHEMA = {
    "n": pl.Int64,
    "kind": pl.Utf8,
    "sheet": pl.Utf8,
    "cell": pl.Utf8,
    "actual": pl.Utf8,
    "expected": pl.Utf8,
    "description": pl.Utf8,
    "recommendation": pl.Utf8,
}

_SHEET_SCHEMA = {
    "sheet": pl.Utf8,
    "axis_row": pl.Int64,
    "axis_col": pl.Int64,
    "rows_audited": pl.Int64,
    "formulas": pl.Int64,
    "hardcode": pl.Int64,
    "break": pl.Int64,
    "error": pl.Int64,
    "consistent": pl.Int64,
    "total": pl.Int64,
    "volatile": pl.Int64,
    "complex": pl.Int64,
    "shifted": pl.Int64,
}


def issues_frame(run: AuditRun) -> pl.DataFrame:
    """One row per stored issue, numbered 1..n in scan order."""
    rows = [
        {
            "n": i,
            "kind": issue.kind.value,
            "sheet": issue.sheet_name,
            "cell": issue.cell_address,
            "actual": issue.actual_text,
            "expected": issue.expected_text,
            "description": issue.description,
            "recommendation": issue.recommendation,
        }
        for i, issue in enumerate(run.issues, start=1)
    ]
    return pl.DataFrame(rows, schema=_ISSUE_SCHEMA)


def sheets_frame(run: AuditRun) -> pl.DataFrame:
    """One row per audited sheet with its (uncapped) counts."""
    rows = [
        {
            "sheet": r.sheet_name,
            "axis_row": r.axis.row,
            "axis_col": r.axis.col,
            "rows_audited": len(r.rows),
            "formulas": r.formula_cells,
            "hardcode": r.counts["hardcode"],
            "break": r.counts["break"],
            "error": r.counts["error"],
            "consistent": r.consistent,
            "total": r.total,
            "volatile": r.volatile_cells,
            "complex": r.complex_cells,
            "shifted": r.shifted_cells,
        }
        for r in run.results
    ]
    return pl.DataFrame(rows, schema=_SHEET_SCHEMA)


def write_issues_csv(run: AuditRun, path: Path) -> Path:
    """Write the issue table to *path* as CSV and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    issues_frame(run).write_csv(path)
    return path
