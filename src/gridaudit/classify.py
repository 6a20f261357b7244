"""Per-cell classification.

``classify_cell`` is a pure function.  Its rules are checked in a fixed
order and the first match wins:

1. empty       -- no value and not a formula
2. error       -- the displayed value is a spreadsheet error code
3. total       -- the cell sits in a total column
4. hardcode    -- a literal value (not a formula)
5. break       -- formula shape differs from the row's dominant pattern
6. consistent  -- everything else
"""

from __future__ import annotations

from enum import Enum

from gridaudit.values import CellValue


class CellStatus(str, Enum):
    empty = "empty"
    error = "error"
    total = "total"
    hardcode = "hardcode"
    break_ = "break"
    consistent = "consistent"


def _is_formula(formula: str | None) -> bool:
    return isinstance(formula, str) and formula.startswith("=")


def classify_cell(
    value: CellValue,
    formula: str | None,
    shape: str | None,
    dominant: str,
    is_total_column: bool,
) -> CellStatus:
    """Classify one audit-zone cell.

    Args:
        value: The cell's displayed value.
        formula: Formula text, or None.
        shape: The formula's relative-reference shape, or None.
        dominant: The row's dominant pattern; ``""`` if none was established.
        is_total_column: Whether the cell's column is a total column.
    """
    is_formula = _is_formula(formula)
    if value.is_empty and not is_formula:
        return CellStatus.empty
    if value.is_error:
        return CellStatus.error
    if is_total_column:
        return CellStatus.total
    if not is_formula:
        return CellStatus.hardcode
    if dominant and shape != dominant:
        return CellStatus.break_
    return CellStatus.consistent
