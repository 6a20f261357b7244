"""Tests for tagged cell values and error-code helpers."""

from __future__ import annotations

import datetime

import pytest

from gridaudit.values import (
    EMPTY,
    CellValue,
    ErrorCode,
    ValueKind,
    describe_error,
    is_error_value,
    recommend_for_error,
)


class TestFromRaw:
    def test_none_and_empty_string_are_empty(self):
        assert CellValue.from_raw(None) is EMPTY
        assert CellValue.from_raw("").is_empty

    def test_bool_is_not_a_number(self):
        v = CellValue.from_raw(True)
        assert v.kind is ValueKind.boolean
        assert not v.is_number

    def test_numbers_become_floats(self):
        v = CellValue.from_raw(3)
        assert v.kind is ValueKind.number
        assert v.raw == 3.0
        assert isinstance(v.raw, float)

    @pytest.mark.parametrize("code", [e.value for e in ErrorCode])
    def test_error_strings(self, code):
        v = CellValue.from_raw(code)
        assert v.is_error
        assert v.raw is ErrorCode(code)

    def test_error_lookalike_is_text(self):
        v = CellValue.from_raw("#TOTAL")
        assert v.kind is ValueKind.text

    def test_other_objects_keep_text_form(self):
        v = CellValue.from_raw(datetime.date(2024, 1, 31))
        assert v.kind is ValueKind.text
        assert v.raw == "2024-01-31"


class TestIntegerPart:
    def test_truncates_toward_zero(self):
        assert CellValue.from_raw(2.9).integer_part() == 2
        assert CellValue.from_raw(-1.5).integer_part() == -1

    def test_non_numbers(self):
        assert CellValue.from_raw("3").integer_part() is None
        assert EMPTY.integer_part() is None

    def test_nan_and_inf(self):
        assert CellValue.from_raw(float("nan")).integer_part() is None
        assert CellValue.from_raw(float("inf")).integer_part() is None


class TestDisplay:
    def test_integral_number_drops_decimal(self):
        assert CellValue.from_raw(100).display() == "100"

    def test_fractional_number(self):
        assert CellValue.from_raw(1.25).display() == "1.25"

    def test_boolean(self):
        assert CellValue.from_raw(False).display() == "FALSE"

    def test_error(self):
        assert CellValue.from_raw("#N/A").display() == "#N/A"

    def test_empty(self):
        assert EMPTY.display() == ""


class TestErrorHelpers:
    def test_is_error_value(self):
        assert is_error_value("#REF!")
        assert not is_error_value("REF")
        assert not is_error_value(None)

    def test_every_code_has_text(self):
        for code in ErrorCode:
            assert describe_error(code) != "Unknown error"
            assert recommend_for_error(code) != "Review formula logic"

    def test_div0_text(self):
        assert describe_error(ErrorCode.div0) == "Division by zero"
        assert "IFERROR" in recommend_for_error(ErrorCode.div0)


class TestEquality:
    def test_equal_values(self):
        assert CellValue.from_raw(1) == CellValue.from_raw(1.0)
        assert hash(CellValue.from_raw("a")) == hash(CellValue.from_raw("a"))

    def test_kind_matters(self):
        assert CellValue.from_raw(1) != CellValue.from_raw(True)
