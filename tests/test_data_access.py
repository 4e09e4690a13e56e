"""Tests for FinancialDataProvider: resolver, source readers and discovery on real SQLite."""

import sqlite3
from unittest.mock import patch

import pytest

from aggregation.errors import DataSourceError, MissingTable, NotFound
from aggregation.mapping import STATEMENT_TABLE_IDS
from api.data_access import FinancialDataProvider
from models import FiscalPeriod


def _execute(db_path, sql):
    conn = sqlite3.connect(db_path)
    conn.execute(sql)
    conn.commit()
    conn.close()


def _drop(db_path, table):
    _execute(db_path, f"DROP TABLE {table}")


class TestConnection:
    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FinancialDataProvider(str(tmp_path / "absent.db"))

    def test_read_only(self, provider):
        with pytest.raises(sqlite3.OperationalError):
            provider.conn.execute("DELETE FROM companies")


# ---------------------------------------------------------------------------
# Identity Resolver
# ---------------------------------------------------------------------------

class TestResolveCompany:
    def test_found(self, provider):
        company = provider.resolve_company(1)
        assert company.cik == "320193"
        assert company.name == "Apple Inc."
        assert company.padded_cik == "0000320193"

    def test_not_found(self, provider):
        with pytest.raises(NotFound) as exc:
            provider.resolve_company(404)
        assert exc.value.company_id == 404


# ---------------------------------------------------------------------------
# Raw-Value Reader
# ---------------------------------------------------------------------------

class TestReadTagValues:
    def test_ordered_by_tag_name(self, provider):
        rows = provider.read_tag_values(1, 2023, "FY")
        assert [r.tag_name for r in rows] == [
            "Assets", "CommitmentsAndContingencies", "NetIncomeLoss", "Revenues",
        ]

    def test_metadata_joined(self, provider):
        rows = {r.tag_name: r for r in provider.read_tag_values(1, 2023, FiscalPeriod.FY)}
        assert rows["Revenues"].label == "Revenues"
        assert rows["Revenues"].description == "Total revenue"
        assert rows["Revenues"].unit == "USD"
        assert rows["Revenues"].value == 383285000000

    def test_null_value_kept(self, provider):
        rows = {r.tag_name: r for r in provider.read_tag_values(1, 2023, "FY")}
        assert rows["CommitmentsAndContingencies"].value is None

    def test_no_rows_is_empty(self, provider):
        assert provider.read_tag_values(1, 2019, "Q2") == []

    def test_query_failure_raises(self, db_path):
        _drop(db_path, "val_filtered")
        p = FinancialDataProvider(db_path)
        try:
            with pytest.raises(DataSourceError) as exc:
                p.read_tag_values(1, 2023, "FY")
            assert exc.value.source == "val_filtered"
        finally:
            p.close()

    def test_non_numeric_value_raises(self, db_path):
        # SQLite keeps text it cannot convert in a REAL column
        _execute(db_path, "UPDATE val_filtered SET val = 'n/a' WHERE fk_id_tag = (SELECT id FROM tag WHERE name = 'Assets')")
        p = FinancialDataProvider(db_path)
        try:
            with pytest.raises(DataSourceError) as exc:
                p.read_tag_values(1, 2023, "FY")
            assert exc.value.source == "val_filtered"
        finally:
            p.close()


# ---------------------------------------------------------------------------
# Statement Reader
# ---------------------------------------------------------------------------

class TestReadStatementValues:
    def test_same_tag_in_several_tables(self, provider):
        result = provider.read_statement_values(1, 2023, "FY")
        net_income = [v for v in result.values if v.tag_name == "NetIncomeLoss"]
        assert {v.statement_table_id: v.value for v in net_income} == {
            "220000": 96995000000,
            "510000": 97000000000,
        }
        assert result.missing_tables == []
        assert result.failed_tables == []

    def test_tables_read_in_configured_order(self, provider):
        result = provider.read_statement_values(3, 2023, "FY")
        assert [v.statement_table_id for v in result.values] == list(STATEMENT_TABLE_IDS)

    def test_no_rows_is_empty(self, provider):
        result = provider.read_statement_values(2, 2023, "FY")
        assert result.values == []

    def test_missing_table_skipped(self, provider_factory):
        tables = [t for t in STATEMENT_TABLE_IDS if t != "148600"]
        p = provider_factory(statement_tables=tables)

        result = p.read_statement_values(3, 2023, "FY")

        assert result.missing_tables == ["148600"]
        assert result.failed_tables == []
        assert sorted(v.statement_table_id for v in result.values) == sorted(tables)
        assert len(result.values) == 7

    def test_single_table_raises_missing(self, provider_factory):
        p = provider_factory(statement_tables=["220000"])
        with pytest.raises(MissingTable) as exc:
            p.read_statement_table("104000", 1, 2023, "FY")
        assert exc.value.table_name == "statement_104000"

    def test_failing_table_does_not_stop_siblings(self, provider):
        original = FinancialDataProvider.read_statement_table

        def flaky(self, table_id, *args):
            if table_id == "310000":
                raise sqlite3.OperationalError("database disk image is malformed")
            return original(self, table_id, *args)

        with patch.object(FinancialDataProvider, "read_statement_table", autospec=True, side_effect=flaky):
            result = provider.read_statement_values(3, 2023, "FY")

        assert result.failed_tables == ["310000"]
        assert result.missing_tables == []
        assert "310000" not in {v.statement_table_id for v in result.values}
        assert len(result.values) == 7

    def test_non_numeric_value_fails_only_its_table(self, db_path):
        _execute(db_path, "UPDATE statement_310000 SET val = 'n/a' WHERE fk_id_company = 3")
        p = FinancialDataProvider(db_path)
        try:
            result = p.read_statement_values(3, 2023, "FY")
        finally:
            p.close()

        assert result.failed_tables == ["310000"]
        assert result.missing_tables == []
        assert [v.statement_table_id for v in result.values] == [
            t for t in STATEMENT_TABLE_IDS if t != "310000"
        ]

    def test_custom_table_list(self, provider):
        result = provider.read_statement_values(3, 2023, "FY", table_ids=["220000"])
        assert [v.tag_name for v in result.values] == ["Tag220000"]


# ---------------------------------------------------------------------------
# Standardized Reader
# ---------------------------------------------------------------------------

class TestReadStandardized:
    def test_identity_columns_excluded(self, provider):
        record = provider.read_standardized("320193", 2023, "FY")
        for key in ("id", "cik", "name", "sic", "fy", "fp"):
            assert key not in record.values

    def test_values(self, provider):
        record = provider.read_standardized("320193", 2023, "FY")
        assert record.values["revenues"] == 383285000000
        assert record.values["free_cash_flow"] == 99584000000
        assert record.values["ebitda"] is None

    def test_absent_row_is_empty_record(self, provider):
        record = provider.read_standardized("320193", 2019, "FY")
        assert record.is_empty
        assert record.cik == "320193"

    def test_query_failure_raises(self, db_path):
        _drop(db_path, "dataset_standard_statements")
        p = FinancialDataProvider(db_path)
        try:
            with pytest.raises(DataSourceError) as exc:
                p.read_standardized("320193", 2023, "FY")
            assert exc.value.source == "dataset_standard_statements"
        finally:
            p.close()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

class TestSearchCompanies:
    def test_by_name(self, provider):
        hits = provider.search_companies("Apple")
        assert [h["name"] for h in hits] == ["Apple Inc."]

    def test_inactive_excluded(self, provider):
        hits = provider.search_companies("Appl")
        assert "Applied Dormant Co" not in [h["name"] for h in hits]

    def test_by_cik(self, provider):
        hits = provider.search_companies("7890")
        assert [h["id"] for h in hits] == [2]

    def test_ordered_by_name(self, provider):
        hits = provider.search_companies("in")
        names = [h["name"] for h in hits]
        assert names == sorted(names)

    def test_limit(self, provider):
        assert len(provider.search_companies("in", limit=1)) == 1

    def test_short_query_returns_nothing(self, provider):
        assert provider.search_companies("A") == []
        assert provider.search_companies("  ") == []


class TestYearsAndPeriods:
    def test_years_newest_first(self, provider):
        assert provider.get_years(1) == [2023, 2022]

    def test_years_unknown_company(self, provider):
        with pytest.raises(NotFound):
            provider.get_years(404)

    def test_periods_display_order(self, provider):
        assert provider.get_periods(1, 2023) == ["Q1", "Q3", "FY"]

    def test_periods_none(self, provider):
        assert provider.get_periods(1, 2010) == []


class TestStats:
    def test_counts(self, provider):
        stats = provider.get_database_stats()
        assert stats["total_companies"] == 4
        assert stats["statement_tables"] == list(STATEMENT_TABLE_IDS)
