"""Row labels: the human context that puts a row in audit scope."""

from __future__ import annotations

from gridaudit.grid import SheetGrid


def safe_trim(s: str, n: int) -> str:
    """Trim a string to at most *n* characters, appending '...' if truncated."""
    if len(s) <= n:
        return s
    return s[:n] + "..."


def resolve_row_label(
    grid: SheetGrid,
    row: int,
    label_columns: int = 4,
    max_chars: int = 60,
) -> str:
    """Pick the most descriptive text among a row's leading columns.

    The longest trimmed display text wins; ties keep the leftmost.  Empty
    and error cells never count.  An empty result means the row carries no
    context and is left out of the audit.

    Args:
        grid: The sheet grid.
        row: 0-based row index.
        label_columns: How many leading columns to consider.
        max_chars: Truncation limit for the returned label.
    """
    best = ""
    for c in range(min(label_columns, grid.n_cols)):
        value = grid.cell(row, c).value
        if value.is_empty or value.is_error:
            continue
        text = value.display().strip()
        if len(text) > len(best):
            best = text
    return safe_trim(best, max_chars)
