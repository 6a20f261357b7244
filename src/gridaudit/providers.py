"""Grid providers: where sheet grids come from.

The audit runner talks to a ``GridProvider``; it never opens files itself.
Two providers ship with the package:

- ``XlsxGridProvider`` reads an ``.xlsx`` workbook with openpyxl.  The file
  is opened twice: once for formula text and once for the cached values
  Excel stored at last save (openpyxl does not recalculate).
- ``SpecGridProvider`` serves sheets described in a YAML/dict workbook spec::

      sheets:
        - name: Model
          cells:
            A2: {value: Revenue}
            E2: {value: 100}
            F2: {formula: "=E2*1.1", value: 110}
        - name: Inputs
          rows:
            - [Label, 1, 2, 3]
      names:
        growth: "=Inputs!$B$4"
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

from gridaudit.errors import GridLoadError, SheetEnumerationError
from gridaudit.formulas.shape import to_r1c1
from gridaudit.grid import Cell, SheetGrid
from gridaudit.values import CellValue

log = logging.getLogger(__name__)


@runtime_checkable
class GridProvider(Protocol):
    """Source of sheet names and sheet grids for an audit run."""

    async def list_sheets(self) -> list[str]:
        """Return all sheet names in workbook order.

        Raises:
            SheetEnumerationError: If the sheet list is unavailable.
        """
        ...

    async def load_grid(self, sheet_name: str) -> SheetGrid | None:
        """Return the sheet's grid, or None if the sheet holds no data.

        Raises:
            GridLoadError: If the sheet cannot be fetched.
        """
        ...


# ---------------------------------------------------------------------------
# XLSX
# ---------------------------------------------------------------------------


def _formula_text(raw: Any) -> str | None:
    """Extract formula text from an openpyxl cell value, if it is a formula."""
    if isinstance(raw, str):
        return raw if raw.startswith("=") else None
    # ArrayFormula / DataTableFormula carry the text on an attribute
    text = getattr(raw, "text", None)
    if isinstance(text, str) and text:
        return text if text.startswith("=") else "=" + text
    return None


class XlsxGridProvider:
    """Read sheet grids from an ``.xlsx`` file.

    Args:
        path: The workbook file.
        max_rows: Rows read per sheet (from A1).
        max_cols: Columns read per sheet (from A1).
    """

    def __init__(self, path: Path, *, max_rows: int = 5000, max_cols: int = 500) -> None:
        self.path = Path(path)
        self.max_rows = max_rows
        self.max_cols = max_cols
        self._wb_formulas: Any = None
        self._wb_values: Any = None

    def _open(self) -> tuple[Any, Any]:
        if self._wb_formulas is None:
            try:
                import openpyxl
            except ImportError:
                raise ImportError(
                    "openpyxl is required for XLSX audits.  "
                    "Install with: pip install openpyxl"
                )
            self._wb_formulas = openpyxl.load_workbook(str(self.path), data_only=False)
            self._wb_values = openpyxl.load_workbook(str(self.path), data_only=True)
        return self._wb_formulas, self._wb_values

    def close(self) -> None:
        for wb in (self._wb_formulas, self._wb_values):
            if wb is not None:
                wb.close()
        self._wb_formulas = self._wb_values = None

    async def list_sheets(self) -> list[str]:
        try:
            wb, _ = await asyncio.to_thread(self._open)
        except ImportError:
            raise
        except Exception as exc:
            raise SheetEnumerationError(f"Cannot open workbook {self.path}: {exc}") from exc
        return list(wb.sheetnames)

    async def load_grid(self, sheet_name: str) -> SheetGrid | None:
        try:
            return await asyncio.to_thread(self._read_sheet, sheet_name)
        except GridLoadError:
            raise
        except Exception as exc:
            raise GridLoadError(sheet_name, f"Sheet {sheet_name!r} failed to load: {exc}") from exc

    async def defined_names(self) -> dict[str, str]:
        """Workbook-scoped defined names mapped to their target formula text."""
        wb, _ = await asyncio.to_thread(self._open)
        names: dict[str, str] = {}
        for name, dn in wb.defined_names.items():
            names[name] = str(dn.attr_text or "")
        return names

    def _read_sheet(self, sheet_name: str) -> SheetGrid | None:
        wb_f, wb_v = self._open()
        if sheet_name not in wb_f.sheetnames:
            raise GridLoadError(sheet_name, f"Sheet {sheet_name!r} not found")
        ws_f = wb_f[sheet_name]
        ws_v = wb_v[sheet_name]

        source_rows = ws_f.max_row or 0
        source_cols = ws_f.max_column or 0
        n_rows = min(source_rows, self.max_rows)
        n_cols = min(source_cols, self.max_cols)
        if source_rows > self.max_rows or source_cols > self.max_cols:
            log.warning(
                "Sheet %r truncated from %dx%d to %dx%d",
                sheet_name, source_rows, source_cols, n_rows, n_cols,
            )
        if n_rows == 0 or n_cols == 0:
            return None

        rows: list[list[Cell]] = []
        has_data = False
        value_rows = ws_v.iter_rows(min_row=1, max_row=n_rows, max_col=n_cols, values_only=True)
        for r, (frow, vrow) in enumerate(
            zip(ws_f.iter_rows(min_row=1, max_row=n_rows, max_col=n_cols), value_rows)
        ):
            row: list[Cell] = []
            for c, (fcell, cached) in enumerate(zip(frow, vrow)):
                formula = _formula_text(fcell.value)
                if formula is not None:
                    value = CellValue.from_raw(cached)
                    shape = to_r1c1(formula, r + 1, c + 1)
                else:
                    value = CellValue.from_raw(fcell.value)
                    shape = None
                if formula is not None or not value.is_empty:
                    has_data = True
                row.append(Cell(value, formula, shape))
            rows.append(row)

        if not has_data:
            return None
        return SheetGrid(sheet_name, rows)


# ---------------------------------------------------------------------------
# Workbook spec (YAML / dict)
# ---------------------------------------------------------------------------


class SpecGridProvider:
    """Serve sheet grids from an in-memory workbook spec.

    Args:
        sheets: List of ``{"name": ..., "cells": {...}}`` or
            ``{"name": ..., "rows": [[...], ...]}`` dicts, in workbook order.
        names: Optional defined names, ``{name: "=target"}``.
    """

    def __init__(self, sheets: list[dict[str, Any]], names: dict[str, Any] | None = None) -> None:
        self._sheets = {s["name"]: s for s in sheets}
        self._order = [s["name"] for s in sheets]
        self._names = names or {}

    @classmethod
    def from_yaml(cls, path: Path) -> SpecGridProvider:
        """Load a workbook spec from a YAML file."""
        spec = yaml.safe_load(Path(path).read_text()) or {}
        return cls(spec.get("sheets", []), spec.get("names"))

    async def list_sheets(self) -> list[str]:
        return list(self._order)

    async def load_grid(self, sheet_name: str) -> SheetGrid | None:
        sheet = self._sheets.get(sheet_name)
        if sheet is None:
            raise GridLoadError(sheet_name, f"Sheet {sheet_name!r} not found")
        if sheet.get("rows"):
            return SheetGrid.from_rows(sheet_name, sheet["rows"])
        cells = sheet.get("cells") or {}
        if not cells:
            return None
        return SheetGrid.from_cells(sheet_name, cells)

    async def defined_names(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for name, target in self._names.items():
            if isinstance(target, dict):
                target = target.get("refers_to", "")
            out[name] = str(target)
        return out
