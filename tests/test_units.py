"""Tests for '<number> <unit>' parsing."""
from __future__ import annotations

import logging

import pytest

from gpu_tap.errors import MalformedUnitString
from gpu_tap.units import split_unit, unit_value


class TestSplitUnit:
    @pytest.mark.parametrize(
        "text, value, unit",
        [
            ("16384 MiB", 16384.0, "MiB"),
            ("5 %", 5.0, "%"),
            ("0.75 W", 0.75, "W"),
            ("-3 C", -3.0, "C"),
            ("12 MiB extra words", 12.0, "MiB extra words"),
        ],
    )
    def test_well_formed(self, text, value, unit):
        assert split_unit(text) == (value, unit)

    def test_non_numeric_prefix_is_zero(self):
        assert split_unit("abc MiB") == (0.0, "MiB")

    @pytest.mark.parametrize("number", ["inf", "-inf", "nan", "1e400"])
    def test_non_finite_number_is_zero(self, number):
        assert split_unit(f"{number} MiB") == (0.0, "MiB")

    def test_empty_number_is_zero(self):
        assert split_unit(" %") == (0.0, "%")

    def test_missing_separator_raises(self):
        with pytest.raises(MalformedUnitString) as excinfo:
            split_unit("N/A")
        assert excinfo.value.text == "N/A"
        assert excinfo.value.value == 0.0
        assert excinfo.value.unit == ""

    def test_empty_string_raises(self):
        with pytest.raises(MalformedUnitString):
            split_unit("")

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            split_unit("42")


class TestUnitValue:
    def test_returns_number(self):
        assert unit_value("384 MiB") == 384.0

    def test_malformed_degrades_to_zero(self, caplog):
        with caplog.at_level(logging.WARNING, logger="gpu_tap.units"):
            assert unit_value("N/A") == 0.0
        assert "N/A" in caplog.text
