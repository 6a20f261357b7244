"""Lark-based tokenizer for spreadsheet formulas.

The audit engine never evaluates formulas; it only needs to see where the
cell references are so they can be rewritten relative to the host cell.  The
grammar below is therefore lexer-only: every character of the formula ends up
in exactly one token, and joining the token values reproduces the input.

Token types (highest lexing priority first):

- ``STRING``        ``"text"`` literal, doubled quotes escaped
- ``QUOTED_SHEET``  ``'My Sheet'!`` prefix
- ``ERROR_LIT``     ``#REF!``, ``#N/A``, ...
- ``SHEET``         ``Sheet1!`` / ``[Book.xlsx]Sheet1!`` prefix
- ``COL_RANGE``     whole-column range ``A:C``, ``$B:$B``
- ``ROW_RANGE``     whole-row range ``1:3``, ``$4:$4``
- ``CELL``          A1-style reference ``B3``, ``$B$3``, ``b3``
- ``NAME``          function or defined name, ``TRUE``/``FALSE``
- ``NUMBER``        numeric literal
- ``WS``            whitespace
- ``OTHER``         any single remaining character (operators, parens, ``=``)
"""

from __future__ import annotations

import re

from lark import Lark, Token

from gridaudit.errors import FormulaShapeError

GRAMMAR = r"""
start: _token*

_token: STRING
    | QUOTED_SHEET
    | ERROR_LIT
    | SHEET
    | COL_RANGE
    | ROW_RANGE
    | CELL
    | NAME
    | NUMBER
    | WS
    | OTHER

STRING.9: /"(?:[^"]|"")*"/
QUOTED_SHEET.8: /'(?:[^']|'')+'!/
ERROR_LIT.8: /#(?:DIV\/0!|N\/A|NAME\?|NULL!|NUM!|REF!|VALUE!|CALC!|SPILL!)/
SHEET.7: /(?:\[[^\]]*\])?[A-Za-z_\\][A-Za-z0-9_.]*!/
COL_RANGE.6: /\$?[A-Za-z]{1,3}:\$?[A-Za-z]{1,3}(?![A-Za-z0-9_(.!])/
ROW_RANGE.6: /\$?[0-9]+:\$?[0-9]+(?![0-9.])/
CELL.5: /\$?[A-Za-z]{1,3}\$?[0-9]+(?![A-Za-z0-9_(.!])/
NAME.4: /[A-Za-z_\\][A-Za-z0-9_.]*/
NUMBER.3: /(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?/
WS.2: /[ \t\r\n]+/
OTHER.1: /[\s\S]/
"""

_lexer = Lark(GRAMMAR, parser="lalr", lexer="basic", start="start")

_CELL_PARTS_RE = re.compile(r"^(\$?)([A-Za-z]{1,3})(\$?)([0-9]+)$")


def tokenize(text: str) -> list[Token]:
    """Split formula text into tokens.

    Args:
        text: Formula text, normally starting with ``=``.

    Returns:
        Tokens in source order; ``"".join(tokens)`` equals *text*.  ``OTHER``
        matches any character, so every string tokenises.
    """
    return list(_lexer.lex(text))


def split_cell_ref(ref: str) -> tuple[bool, str, bool, int]:
    """Split a ``CELL`` token into (col_absolute, letters, row_absolute, row).

    Examples:
        ``"B3"`` -> ``(False, "B", False, 3)``
        ``"$b$3"`` -> ``(True, "B", True, 3)``
    """
    m = _CELL_PARTS_RE.match(ref)
    if not m:
        raise FormulaShapeError(f"Not a cell reference: {ref!r}")
    return bool(m.group(1)), m.group(2).upper(), bool(m.group(3)), int(m.group(4))


def function_names(tokens: list[Token]) -> list[str]:
    """Return upper-cased names of function calls, in order of appearance.

    A ``NAME`` token is a function call when the next non-whitespace token is
    an opening parenthesis.
    """
    names: list[str] = []
    for i, tok in enumerate(tokens):
        if tok.type != "NAME":
            continue
        j = i + 1
        while j < len(tokens) and tokens[j].type == "WS":
            j += 1
        if j < len(tokens) and tokens[j] == "(":
            names.append(str(tok).upper())
    return names
