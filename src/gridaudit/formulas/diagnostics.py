"""Per-formula diagnostics: volatile functions, complexity, shifted references.

These never produce Issues; the runner only counts them per sheet.
"""

from __future__ import annotations

from gridaudit.formulas.lexer import function_names, split_cell_ref, tokenize
from gridaudit.formulas.shape import col_letter_to_index

VOLATILE_FUNCTIONS = frozenset({
    "NOW", "TODAY", "RAND", "RANDBETWEEN", "INDIRECT", "OFFSET", "INFO", "CELL",
})


def volatile_functions(formula: str) -> list[str]:
    """Return the volatile functions called by *formula*, in order of first use."""
    found: list[str] = []
    for name in function_names(tokenize(formula)):
        if name in VOLATILE_FUNCTIONS and name not in found:
            found.append(name)
    return found


def complexity_score(formula: str) -> int:
    """Score a formula from 0 (trivial) to 10 (very hard to review).

    Four factors are summed and rounded:

    - length: >200 chars 2, >100 chars 1, >50 chars 0.5
    - nesting depth of parentheses: >5 3, >3 2, >1 1
    - function calls: >10 2, >5 1, >2 0.5
    - cell references (not whole rows or columns): >20 2, >10 1, >5 0.5
    """
    tokens = tokenize(formula)
    score = 0.0

    n = len(formula)
    if n > 200:
        score += 2
    elif n > 100:
        score += 1
    elif n > 50:
        score += 0.5

    depth = max_depth = 0
    for tok in tokens:
        if tok == "(":
            depth += 1
            max_depth = max(max_depth, depth)
        elif tok == ")":
            depth -= 1
    if max_depth > 5:
        score += 3
    elif max_depth > 3:
        score += 2
    elif max_depth > 1:
        score += 1

    n_funcs = len(function_names(tokens))
    if n_funcs > 10:
        score += 2
    elif n_funcs > 5:
        score += 1
    elif n_funcs > 2:
        score += 0.5

    n_refs = sum(1 for tok in tokens if tok.type == "CELL")
    if n_refs > 20:
        score += 2
    elif n_refs > 10:
        score += 1
    elif n_refs > 5:
        score += 0.5

    return min(10, int(score + 0.5))


def shifted_reference(formula: str, col: int) -> bool:
    """Return True if *formula* mixes its own column with a nearby one.

    A formula in column *col* (1-based) that references cells of that column
    and also cells up to three columns away often comes from a copy that
    picked up the wrong column, e.g. ``=H2-G3`` in column H.  Whole-row and
    whole-column ranges are ignored.
    """
    same_col = near_col = False
    for tok in tokenize(formula):
        if tok.type != "CELL":
            continue
        dist = abs(col_letter_to_index(split_cell_ref(str(tok))[1]) - col)
        if dist == 0:
            same_col = True
        elif dist <= 3:
            near_col = True
    return same_col and near_col
