"""Cell value classification.

Raw host values arrive duck-typed (number, string, boolean, ``None``, or an
error-code string such as ``#DIV/0!``).  ``CellValue.from_raw`` tags each one
with a ``ValueKind`` so downstream code never has to re-sniff types.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ValueKind(str, Enum):
    empty = "empty"
    number = "number"
    text = "text"
    boolean = "boolean"
    error = "error"


class ErrorCode(str, Enum):
    """Closed set of spreadsheet-native error codes."""

    div0 = "#DIV/0!"
    na = "#N/A"
    name = "#NAME?"
    null = "#NULL!"
    num = "#NUM!"
    ref = "#REF!"
    value = "#VALUE!"
    calc = "#CALC!"
    spill = "#SPILL!"


_ERROR_CODES: dict[str, ErrorCode] = {e.value: e for e in ErrorCode}

_ERROR_DESCRIPTIONS: dict[ErrorCode, str] = {
    ErrorCode.div0: "Division by zero",
    ErrorCode.na: "Value not available",
    ErrorCode.name: "Unrecognized name",
    ErrorCode.null: "Incorrect range reference",
    ErrorCode.num: "Invalid numeric value",
    ErrorCode.ref: "Invalid cell reference",
    ErrorCode.value: "Wrong value type",
    ErrorCode.calc: "Calculation error",
    ErrorCode.spill: "Spill range blocked",
}

_ERROR_RECOMMENDATIONS: dict[ErrorCode, str] = {
    ErrorCode.div0: "Check denominator; use IFERROR wrapper",
    ErrorCode.na: "Verify lookup value exists; use IFNA",
    ErrorCode.name: "Check for typos or undefined names",
    ErrorCode.null: "Check range intersection syntax",
    ErrorCode.num: "Check for invalid numeric arguments",
    ErrorCode.ref: "Update deleted cell references",
    ErrorCode.value: "Check data types in formula",
    ErrorCode.calc: "Review calculation logic",
    ErrorCode.spill: "Clear blocking cells in spill range",
}


def is_error_value(raw: Any) -> bool:
    """Return True if *raw* is one of the recognised spreadsheet error codes."""
    return isinstance(raw, str) and raw in _ERROR_CODES


def describe_error(code: ErrorCode) -> str:
    return _ERROR_DESCRIPTIONS.get(code, "Unknown error")


def recommend_for_error(code: ErrorCode) -> str:
    return _ERROR_RECOMMENDATIONS.get(code, "Review formula logic")


class CellValue:
    """A tagged cell value.

    Attributes:
        kind: The value's tag.
        raw: The payload: ``float`` for numbers, ``str`` for text, ``bool``
            for booleans, ``ErrorCode`` for errors, ``None`` for empty.
    """

    __slots__ = ("kind", "raw")

    def __init__(self, kind: ValueKind, raw: Any = None) -> None:
        self.kind = kind
        self.raw = raw

    @classmethod
    def from_raw(cls, raw: Any) -> CellValue:
        """Classify a raw host value."""
        if raw is None:
            return EMPTY
        # bool before number: bool is an int subclass
        if isinstance(raw, bool):
            return cls(ValueKind.boolean, raw)
        if isinstance(raw, (int, float)):
            return cls(ValueKind.number, float(raw))
        if isinstance(raw, ErrorCode):
            return cls(ValueKind.error, raw)
        if isinstance(raw, str):
            if raw == "":
                return EMPTY
            code = _ERROR_CODES.get(raw)
            if code is not None:
                return cls(ValueKind.error, code)
            return cls(ValueKind.text, raw)
        # datetime, time, Decimal, ... -- keep their text form
        return cls(ValueKind.text, str(raw))

    @property
    def is_empty(self) -> bool:
        return self.kind is ValueKind.empty

    @property
    def is_number(self) -> bool:
        return self.kind is ValueKind.number

    @property
    def is_error(self) -> bool:
        return self.kind is ValueKind.error

    def integer_part(self) -> int | None:
        """Integer part of a numeric value (truncated toward zero), else None."""
        if self.kind is not ValueKind.number:
            return None
        if self.raw != self.raw or self.raw in (float("inf"), float("-inf")):
            return None
        return int(self.raw)

    def display(self) -> str:
        """Text representation as a spreadsheet would show it."""
        if self.kind is ValueKind.empty:
            return ""
        if self.kind is ValueKind.boolean:
            return "TRUE" if self.raw else "FALSE"
        if self.kind is ValueKind.number:
            if self.integer_part() is not None and self.raw == int(self.raw):
                return str(int(self.raw))
            return f"{self.raw:.10g}"
        if self.kind is ValueKind.error:
            return self.raw.value
        return str(self.raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellValue):
            return NotImplemented
        return self.kind is other.kind and self.raw == other.raw

    def __hash__(self) -> int:
        return hash((self.kind, self.raw))

    def __repr__(self) -> str:
        if self.kind is ValueKind.empty:
            return "CellValue(empty)"
        return f"CellValue({self.kind.value}, {self.raw!r})"


EMPTY = CellValue(ValueKind.empty)
