"""Relative-reference (R1C1-style) formula shapes.

Two formulas that were produced by filling one formula across a row produce
different A1 text (``=B4*1.1`` in C4, ``=C4*1.1`` in D4) but the same shape
(``=RC[-1]*1.1``).  Comparing shapes is what lets the engine spot a cell whose
formula does not follow the rest of its row.

Rewriting rules, for a formula hosted at 1-based (row, col):

- ``B3`` becomes ``R[dr]C[dc]`` with ``dr = 3 - row``, ``dc = 2 - col``;
  zero offsets drop the brackets (``RC``, ``R[1]C``).
- ``$``-anchored parts are absolute: ``$B$3`` becomes ``R3C2``.
- Whole-column ranges ``A:C`` become ``C[..]:C[..]``; whole-row ranges
  ``1:3`` become ``R[..]:R[..]``.
- Everything else (sheet prefixes, strings, names, numbers) is kept verbatim.
"""

from __future__ import annotations

from gridaudit.formulas.lexer import split_cell_ref, tokenize


def col_letter_to_index(letters: str) -> int:
    """Convert column letters to a 1-based column number (``A`` -> 1)."""
    n = 0
    for ch in letters.upper():
        n = n * 26 + (ord(ch) - 64)
    return n


def _axis_part(prefix: str, absolute: bool, target: int, origin: int) -> str:
    if absolute:
        return f"{prefix}{target}"
    offset = target - origin
    if offset == 0:
        return prefix
    return f"{prefix}[{offset}]"


def _cell_to_r1c1(ref: str, row: int, col: int) -> str:
    col_abs, letters, row_abs, ref_row = split_cell_ref(ref)
    ref_col = col_letter_to_index(letters)
    return _axis_part("R", row_abs, ref_row, row) + _axis_part("C", col_abs, ref_col, col)


def _col_range_to_r1c1(text: str, col: int) -> str:
    parts = []
    for end in text.split(":"):
        absolute = end.startswith("$")
        parts.append(_axis_part("C", absolute, col_letter_to_index(end.lstrip("$")), col))
    return ":".join(parts)


def _row_range_to_r1c1(text: str, row: int) -> str:
    parts = []
    for end in text.split(":"):
        absolute = end.startswith("$")
        parts.append(_axis_part("R", absolute, int(end.lstrip("$")), row))
    return ":".join(parts)


def to_r1c1(formula: str | None, row: int, col: int) -> str | None:
    """Rewrite a formula's A1 references relative to its host cell.

    Args:
        formula: Formula text (must start with ``=`` to be rewritten).
        row: 1-based row of the host cell.
        col: 1-based column of the host cell.

    Returns:
        The R1C1-style shape, or None when *formula* is not a formula.
    """
    if not isinstance(formula, str) or not formula.startswith("="):
        return None
    out: list[str] = []
    for tok in tokenize(formula):
        if tok.type == "CELL":
            out.append(_cell_to_r1c1(str(tok), row, col))
        elif tok.type == "COL_RANGE":
            out.append(_col_range_to_r1c1(str(tok), col))
        elif tok.type == "ROW_RANGE":
            out.append(_row_range_to_r1c1(str(tok), row))
        else:
            out.append(str(tok))
    return "".join(out)
