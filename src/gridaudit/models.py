"""Result records produced by an audit run.

These are the hand-off to report builders: everything here serialises with
``model_dump(mode="json")``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from gridaudit.classify import CellStatus
from gridaudit.detect import AxisInfo


class IssueKind(str, Enum):
    hardcode = "Hardcode"
    break_ = "Break"
    error = "Error"


# Statuses that turn into Issues, and the counter each one feeds.
ISSUE_KINDS: dict[CellStatus, IssueKind] = {
    CellStatus.hardcode: IssueKind.hardcode,
    CellStatus.break_: IssueKind.break_,
    CellStatus.error: IssueKind.error,
}


class Issue(BaseModel):
    kind: IssueKind
    sheet_name: str
    cell_address: str
    actual_text: str = ""
    expected_text: str = ""
    description: str = ""
    recommendation: str = ""


class CellMark(BaseModel):
    column: int  # 1-based
    address: str
    status: CellStatus


class RowAudit(BaseModel):
    row: int  # 1-based
    label: str
    dominant_pattern: str = ""
    marks: list[CellMark] = Field(default_factory=list)


def _zero_counts() -> dict[str, int]:
    return {"hardcode": 0, "break": 0, "error": 0}


class SheetAuditResult(BaseModel):
    """Per-sheet counts and row-level classification marks."""

    sheet_name: str
    axis: AxisInfo = Field(default_factory=AxisInfo)
    counts: dict[str, int] = Field(default_factory=_zero_counts)
    consistent: int = 0
    total: int = 0
    formula_cells: int = 0
    volatile_cells: int = 0
    complex_cells: int = 0
    shifted_cells: int = 0
    total_columns: list[int] = Field(default_factory=list)
    rows: list[RowAudit] = Field(default_factory=list)

    def record(self, status: CellStatus) -> None:
        """Count one classified (non-empty) cell."""
        if status in ISSUE_KINDS:
            self.counts[status.value] += 1
        elif status is CellStatus.consistent:
            self.consistent += 1
        elif status is CellStatus.total:
            self.total += 1

    @property
    def issue_count(self) -> int:
        return sum(self.counts.values())


class NamedRangeInfo(BaseModel):
    name: str
    refers_to: str = ""
    is_valid: bool = True
