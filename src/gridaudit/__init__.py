"""gridaudit -- formula-consistency auditing for tabular financial models."""

__version__ = "0.3.0"

from gridaudit.classify import CellStatus, classify_cell
from gridaudit.grid import Cell, SheetGrid
from gridaudit.runner import (
    AuditRun,
    audit_grid,
    audit_sheet,
    audit_workbook,
    run_audit,
)

__all__ = [
    "AuditRun",
    "Cell",
    "CellStatus",
    "SheetGrid",
    "__version__",
    "audit_grid",
    "audit_sheet",
    "audit_workbook",
    "classify_cell",
    "run_audit",
]
