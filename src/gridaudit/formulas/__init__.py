"""Formula tokenising, R1C1 shapes and diagnostics.

Public API::

    from gridaudit.formulas import to_r1c1, tokenize, complexity_score
"""

from gridaudit.formulas.diagnostics import (
    VOLATILE_FUNCTIONS,
    complexity_score,
    shifted_reference,
    volatile_functions,
)
from gridaudit.formulas.lexer import function_names, split_cell_ref, tokenize
from gridaudit.formulas.shape import col_letter_to_index, to_r1c1

__all__ = [
    "VOLATILE_FUNCTIONS",
    "col_letter_to_index",
    "complexity_score",
    "function_names",
    "shifted_reference",
    "split_cell_ref",
    "to_r1c1",
    "tokenize",
    "volatile_functions",
]
