"""Tests for cell input coercion."""

import math
import random

import pytest

from tablesession.coercion import coerce, display_text, to_sql_text, to_text


class TestCoerce:
    """Test raw text to scalar parsing."""

    @pytest.mark.parametrize("raw", ["", "   ", "null", "NULL", " Null "])
    def test_blank_and_null_token_become_none(self, raw):
        """Blank input and the null token map to None."""
        assert coerce(raw) is None

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("TRUE", True), (" True ", True), ("false", False), ("FaLsE", False)],
    )
    def test_booleans_are_case_insensitive(self, raw, expected):
        """true/false parse to booleans in any case."""
        assert coerce(raw) is expected

    @pytest.mark.parametrize(
        "raw,expected",
        [("42", 42), ("-7", -7), (" 3.5 ", 3.5), ("1e3", 1000.0), ("0", 0)],
    )
    def test_numbers(self, raw, expected):
        """Numeric text becomes int or float."""
        value = coerce(raw)
        assert value == expected
        assert type(value) is type(expected)

    def test_nan_stays_text(self):
        """NaN is not accepted as a number."""
        assert coerce("nan") == "nan"

    def test_infinity_is_a_number(self):
        """The host parser accepts infinity."""
        assert coerce("inf") == math.inf

    def test_text_is_trimmed(self):
        """Anything else comes back as the trimmed text."""
        assert coerce("  Bob  ") == "Bob"
        assert coerce("12 apples") == "12 apples"

    def test_numeric_text_cannot_stay_text(self):
        """No column awareness: "123" is always a number."""
        assert coerce("123") == 123


class TestRoundTrip:
    """Test that canonical text parses back to the same value."""

    def test_fixed_values(self):
        """Null, booleans and edge numbers survive a round trip."""
        for value in [None, True, False, 0, -1, 10**20, 0.1, -2.5, 1e-300, math.inf, -math.inf]:
            once = coerce(to_text(value))
            assert coerce(to_text(once)) == once
            assert once == value

    def test_random_numbers(self):
        """Random ints and floats round-trip."""
        rng = random.Random(1234)
        for _ in range(2000):
            value = rng.choice([rng.randint(-(10**12), 10**12), rng.uniform(-1e9, 1e9)])
            once = coerce(to_text(coerce(to_text(value))))
            assert once == value
            assert coerce(to_text(once)) == once


class TestRendering:
    """Test value to text rendering."""

    def test_display_text(self):
        """Editors start blank for NULL and show JSON for objects."""
        assert display_text(None) == ""
        assert display_text(True) == "true"
        assert display_text({"a": 1}) == '{"a": 1}'
        assert display_text(12) == "12"

    def test_sql_text_keeps_null(self):
        """NULL is bound as a real NULL, everything else as text."""
        assert to_sql_text(None) is None
        assert to_sql_text(False) == "false"
        assert to_sql_text(3.25) == "3.25"
        assert to_sql_text([1, 2]) == "[1, 2]"
