"""Sheet grids: the immutable cell matrix a sheet audit runs over."""

from __future__ import annotations

import re
from typing import Any, Iterator, Sequence

from gridaudit.formulas.shape import col_letter_to_index, to_r1c1
from gridaudit.values import EMPTY, CellValue


# ---------------------------------------------------------------------------
# Cell address helpers
# ---------------------------------------------------------------------------

_ADDR_RE = re.compile(r"^\$?([A-Za-z]{1,3})\$?(\d+)$")


def col_letter(idx: int) -> str:
    """Convert a 0-based column index to letter(s)."""
    result = ""
    n = idx + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def make_addr(row: int, col: int) -> str:
    """Build a cell address from 0-based row/col."""
    return f"{col_letter(col)}{row + 1}"


def parse_addr(addr: str) -> tuple[int, int]:
    """Parse an address like ``"C5"`` into 0-based (row, col).

    Raises:
        ValueError: If *addr* is not an A1-style address.
    """
    m = _ADDR_RE.match(addr.strip())
    if not m:
        raise ValueError(f"Invalid cell address: {addr!r}")
    return int(m.group(2)) - 1, col_letter_to_index(m.group(1)) - 1


# ---------------------------------------------------------------------------
# Cell / SheetGrid
# ---------------------------------------------------------------------------


class Cell:
    """One grid cell.

    Attributes:
        value: The displayed value.
        formula: Formula text in A1 notation, or None for literal cells.
        shape: Relative-reference shape of the formula, or None.
    """

    __slots__ = ("value", "formula", "shape")

    def __init__(
        self,
        value: CellValue = EMPTY,
        formula: str | None = None,
        shape: str | None = None,
    ) -> None:
        self.value = value
        self.formula = formula
        self.shape = shape

    @property
    def is_formula(self) -> bool:
        return isinstance(self.formula, str) and self.formula.startswith("=")

    def __repr__(self) -> str:
        if self.is_formula:
            return f"Cell({self.value!r}, formula={self.formula!r})"
        return f"Cell({self.value!r})"


_BLANK = Cell()


class SheetGrid:
    """A rectangular, read-only matrix of cells for one sheet.

    Indices passed to ``cell()`` are 0-based; the grid's origin is A1.
    """

    def __init__(self, name: str, rows: Sequence[Sequence[Cell]]) -> None:
        self.name = name
        n_cols = max((len(r) for r in rows), default=0)
        self._rows: tuple[tuple[Cell, ...], ...] = tuple(
            tuple(r) + (_BLANK,) * (n_cols - len(r)) for r in rows
        )
        self.n_rows = len(self._rows)
        self.n_cols = n_cols

    @classmethod
    def from_rows(
        cls,
        name: str,
        values: Sequence[Sequence[Any]],
        formulas: Sequence[Sequence[str | None]] | None = None,
        shapes: Sequence[Sequence[str | None]] | None = None,
    ) -> SheetGrid:
        """Build a grid from parallel 2-D lists of raw values/formulas/shapes.

        Missing trailing entries are treated as blank.  When *shapes* is
        omitted, each formula's shape is computed from its position.

        A value that is itself formula text (starts with ``=``) and has no
        matching entry in *formulas* is taken as the formula, with an empty
        displayed value.
        """
        n_rows = max(len(values), len(formulas or ()), len(shapes or ()))
        rows: list[list[Cell]] = []
        for r in range(n_rows):
            vrow = values[r] if r < len(values) else ()
            frow = formulas[r] if formulas is not None and r < len(formulas) else ()
            srow = shapes[r] if shapes is not None and r < len(shapes) else ()
            width = max(len(vrow), len(frow), len(srow))
            row: list[Cell] = []
            for c in range(width):
                raw = vrow[c] if c < len(vrow) else None
                formula = frow[c] if c < len(frow) else None
                if formula is None and isinstance(raw, str) and raw.startswith("="):
                    formula, raw = raw, None
                if shapes is not None:
                    shape = srow[c] if c < len(srow) else None
                else:
                    shape = to_r1c1(formula, r + 1, c + 1)
                row.append(Cell(CellValue.from_raw(raw), formula, shape))
            rows.append(row)
        return cls(name, rows)

    @classmethod
    def from_cells(cls, name: str, cells: dict[str, dict[str, Any]]) -> SheetGrid:
        """Build a grid from an address-keyed mapping.

        Each entry is ``{"value": ...}``, ``{"formula": "=..."}`` or both;
        an optional ``"shape"`` overrides the computed shape.
        """
        placed: dict[tuple[int, int], dict[str, Any]] = {}
        for addr, spec in cells.items():
            if not isinstance(spec, dict):
                spec = {"value": spec}
            placed[parse_addr(addr)] = spec
        n_rows = max((r for r, _ in placed), default=-1) + 1
        n_cols = max((c for _, c in placed), default=-1) + 1
        rows: list[list[Cell]] = [[_BLANK] * n_cols for _ in range(n_rows)]
        for (r, c), spec in placed.items():
            formula = spec.get("formula")
            if formula is not None and not str(formula).startswith("="):
                formula = "=" + str(formula)
            shape = spec["shape"] if "shape" in spec else to_r1c1(formula, r + 1, c + 1)
            rows[r][c] = Cell(CellValue.from_raw(spec.get("value")), formula, shape)
        return cls(name, rows)

    def cell(self, row: int, col: int) -> Cell:
        if 0 <= row < self.n_rows and 0 <= col < self.n_cols:
            return self._rows[row][col]
        return _BLANK

    def row(self, row: int) -> tuple[Cell, ...]:
        return self._rows[row]

    def __iter__(self) -> Iterator[tuple[Cell, ...]]:
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"SheetGrid({self.name!r}, {self.n_rows}x{self.n_cols})"
