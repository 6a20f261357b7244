"""Period-axis and total-column detection.

Financial models lay recurring periods out left to right and usually number
them somewhere near the top of the sheet (1, 2, 3, ...).  Finding that run
tells the engine where the period columns start (the audit zone) and which
columns interrupt the sequence (yearly totals and other summary columns).
"""

from __future__ import annotations

from pydantic import BaseModel

from gridaudit.grid import SheetGrid


class AxisInfo(BaseModel):
    """Location of the period axis.

    Attributes:
        row: 1-based axis row, 0 if not found.
        col: 1-based first period column, 0 if not found.
        end_col: 1-based last numeric column of the run, 0 if not found.
        run_length: Last period number reached by the run.
    """

    model_config = {"frozen": True}

    row: int = 0
    col: int = 0
    end_col: int = 0
    run_length: int = 0

    @property
    def found(self) -> bool:
        return self.row > 0 and self.col > 0


NOT_FOUND = AxisInfo()


def _extend_run(grid: SheetGrid, row: int, start: int) -> tuple[int, int]:
    """Extend a 1,2,3 run rightward from column *start* + 3.

    Returns (run, last_numeric_col) with 0-based column.  A numeric cell
    continues the run when its integer part is run+1 or run+2 (one skipped
    period is tolerated); any other number ends it.  Non-numeric cells are
    stepped over without ending the run.
    """
    run = 3
    last = start + 2
    for c in range(start + 3, grid.n_cols):
        v = grid.cell(row, c).value
        if not v.is_number:
            continue
        n = v.integer_part()
        if n is not None and run + 1 <= n <= run + 2:
            run = n
            last = c
        else:
            break
    return run, last


def detect_axis(grid: SheetGrid, scan_rows: int = 15) -> AxisInfo:
    """Locate the longest 1,2,3,... numeric run in the top rows of a sheet.

    Args:
        grid: The sheet grid.
        scan_rows: Number of leading rows to scan.

    Returns:
        AxisInfo of the longest run (first found on ties), or an AxisInfo
        of zeros when no row holds a 1,2,3 triple.
    """
    best = NOT_FOUND
    for r in range(min(scan_rows, grid.n_rows)):
        for c in range(grid.n_cols - 2):
            triple = [grid.cell(r, c + k).value.integer_part() for k in range(3)]
            if triple != [1, 2, 3]:
                continue
            run, last = _extend_run(grid, r, c)
            if run > best.run_length:
                best = AxisInfo(row=r + 1, col=c + 1, end_col=last + 1, run_length=run)
    return best


def detect_total_columns(
    grid: SheetGrid,
    axis_row: int,
    start_col: int,
    end_col: int,
) -> dict[int, bool]:
    """Flag columns whose axis-row value breaks the numeric period sequence.

    Args:
        grid: The sheet grid.
        axis_row: 0-based axis row.
        start_col: 0-based first column to check (inclusive).
        end_col: 0-based last column to check (inclusive).

    Returns:
        Mapping of 0-based column index -> True for every total column.
    """
    totals: dict[int, bool] = {}
    if axis_row < 0:
        return totals
    for c in range(max(start_col, 0), end_col + 1):
        if not grid.cell(axis_row, c).value.is_number:
            totals[c] = True
    return totals
