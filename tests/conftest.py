"""Shared fixtures for the gridaudit test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest


@pytest.fixture(autouse=True)
def _reset_event_sink():
    """Keep the module-level event sink from leaking between tests."""
    yield
    from gridaudit.logging.events import set_log_dir

    set_log_dir(None)


@pytest.fixture
def model_rows() -> list[list[Any]]:
    """A small model: axis in row 1 (E..H), three labelled rows.

    Row 2 is clean, row 3 carries one hardcode (G3), row 4 one break (H4).
    """
    return [
        ["", "", "", "", 1, 2, 3, 4],
        ["Revenue", "", "", 100, "=D2*1.1", "=E2*1.1", "=F2*1.1", "=G2*1.1"],
        ["Costs", "", "", 40, "=D3*1.05", "=E3*1.05", 55, "=G3*1.05"],
        ["Profit", "", "", "", "=E2-E3", "=F2-F3", "=G2-G3", "=H2-G3"],
    ]


@pytest.fixture
def make_xlsx(tmp_path: Path):
    """Factory for creating XLSX files with openpyxl."""
    openpyxl = pytest.importorskip("openpyxl")

    def _make(
        sheets: dict[str, dict[str, Any]],
        filename: str = "model.xlsx",
        names: dict[str, str] | None = None,
    ) -> Path:
        wb = openpyxl.Workbook()
        first = True
        for sheet_name, cells in sheets.items():
            if first:
                ws = wb.active
                ws.title = sheet_name
                first = False
            else:
                ws = wb.create_sheet(sheet_name)
            for addr, val in cells.items():
                ws[addr] = val
        if names:
            from openpyxl.workbook.defined_name import DefinedName

            for name, target in names.items():
                wb.defined_names[name] = DefinedName(name, attr_text=target)
        path = tmp_path / filename
        wb.save(str(path))
        wb.close()
        return path

    return _make
