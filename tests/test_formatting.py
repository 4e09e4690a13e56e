"""Tests for presentation helpers: None must always render, never raise."""

import pytest

from utils.formatting import (
    categorize_tag,
    format_cik,
    format_number,
    format_statement_values,
)


class TestFormatNumber:
    @pytest.mark.parametrize("value, expected", [
        (2.5e12, "2.50T"),
        (1.5e9, "1.50B"),
        (-1.5e9, "-1.50B"),
        (1500000, "1.50M"),
        (2500, "2.50K"),
        (999, "999"),
        (0, "0"),
        (6.16, "6.16"),
    ])
    def test_scales(self, value, expected):
        assert format_number(value) == expected

    def test_none(self):
        assert format_number(None) == "N/A"

    def test_non_number_passed_through(self):
        assert format_number("USD") == "USD"


class TestFormatStatementValues:
    def test_lines(self):
        assert format_statement_values({"220000": 1500000, "510000": 2500}) == "220000: 1.50M\n510000: 2.50K"

    def test_nulls_skipped(self):
        assert format_statement_values({"220000": None, "510000": 2500}) == "510000: 2.50K"

    @pytest.mark.parametrize("values", [None, {}, {"220000": None}])
    def test_nothing_to_show(self, values):
        assert format_statement_values(values) == "N/A"


class TestFormatCik:
    def test_padded(self):
        assert format_cik("320193") == "0000320193"
        assert format_cik(320193) == "0000320193"

    def test_missing(self):
        assert format_cik(None) == "N/A"


class TestCategorizeTag:
    @pytest.mark.parametrize("tag, category", [
        ("Revenues", "Income Statement"),
        ("NetIncomeLoss", "Income Statement"),
        ("AssetsCurrent", "Balance Sheet"),
        ("StockholdersEquity", "Balance Sheet"),
        ("NetCashProvidedByUsedInOperatingActivities", "Cash Flow"),
        ("WeightedAverageNumberOfSharesOutstandingBasic", "Share Information"),
        ("CommitmentsAndContingencies", "Other"),
        (None, "Other"),
    ])
    def test_rules(self, tag, category):
        assert categorize_tag(tag) == category
