"""Dominant formula pattern of a row."""

from __future__ import annotations

from typing import Iterable

MIN_FORMULAS_FOR_DOMINANT = 3
DOMINANT_SHARE = 0.4


def dominant_pattern(
    shapes: Iterable[str | None],
    min_formulas: int = MIN_FORMULAS_FOR_DOMINANT,
    share: float = DOMINANT_SHARE,
) -> str:
    """Return the row's majority formula shape, or ``""`` if there is none.

    Only non-empty shapes starting with ``=`` count as formulas.  A pattern
    is established when the row has at least *min_formulas* formulas and
    the most frequent shape covers at least *share* of them.  Ties go to
    the shape seen first in scan order.

    Args:
        shapes: Formula shapes of the audit-zone cells, left to right,
            total columns already excluded.
        min_formulas: Quorum of formulas needed before judging the row.
        share: Minimum fraction of formulas the top shape must cover.
    """
    counts: dict[str, int] = {}
    total = 0
    for shape in shapes:
        if not shape or not shape.startswith("="):
            continue
        counts[shape] = counts.get(shape, 0) + 1
        total += 1

    if total < min_formulas:
        return ""

    best = ""
    best_count = 0
    for shape, n in counts.items():
        if n > best_count:
            best, best_count = shape, n

    if best_count >= share * total:
        return best
    return ""
