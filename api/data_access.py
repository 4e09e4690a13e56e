"""
Data access layer for the SEC filing database.
Provides read-only access to SQLite with the identity resolver and the
three source readers the aggregation engine consumes.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from .config import settings
from aggregation.errors import DataSourceError, MissingTable, NotFound
from aggregation.mapping import (
    EXCLUDED_DATASET_COLUMNS,
    STATEMENT_TABLE_IDS,
    statement_table_name,
)
from models import (
    CompanyRef,
    FiscalPeriod,
    StandardizedRecord,
    StatementReadResult,
    StatementValue,
    TagValue,
    sort_periods,
)

logger = logging.getLogger(__name__)

PeriodLike = Union[FiscalPeriod, str]


def _period_code(period: PeriodLike) -> str:
    return period.value if isinstance(period, FiscalPeriod) else str(period)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class FinancialDataProvider:
    """
    Provides filing data from the SEC database.
    Thread-safe read-only access for multi-client API server.
    """

    def __init__(self, db_path: str = None, timeout: int = None):
        """
        Initialize connection to financial database.

        Args:
            db_path: Path to financials.db (defaults to config setting)
            timeout: SQLite busy timeout in seconds (defaults to config setting)
        """
        self.db_path = db_path or settings.DB_PATH

        if not Path(self.db_path).exists():
            raise FileNotFoundError(f"Database not found: {self.db_path}")

        # Read-only connection with WAL mode support
        self.conn = sqlite3.connect(
            f"file:{self.db_path}?mode=ro",
            uri=True,
            check_same_thread=False,
            timeout=timeout or settings.DB_TIMEOUT
        )
        self.conn.row_factory = sqlite3.Row

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ----------------------------------------------------------------
    # Identity Resolver
    # ----------------------------------------------------------------

    def resolve_company(self, company_id: int) -> CompanyRef:
        """
        Map an internal company id to its CIK and name.

        Raises:
            NotFound: no company has this id
            DataSourceError: the lookup itself failed
        """
        try:
            cur = self.conn.execute(
                "SELECT id, cik, name FROM companies WHERE id = ?",
                (company_id,)
            )
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise DataSourceError("companies", e) from e

        if not row:
            raise NotFound(company_id)
        return CompanyRef(id=row["id"], cik=str(row["cik"]), name=row["name"] or "")

    # ----------------------------------------------------------------
    # Raw-Value Reader
    # ----------------------------------------------------------------

    def read_tag_values(self, company_id: int, fiscal_year: int, period: PeriodLike) -> List[TagValue]:
        """
        Get val_filtered rows joined to tag metadata, ordered by tag name.

        Returns:
            List of TagValue (empty when the period has no rows)
        """
        sql = """
            SELECT v.val AS val, t.name AS tag_name, t.label, t.description, v.unit
            FROM val_filtered v
            JOIN tag t ON v.fk_id_tag = t.id
            WHERE v.fk_id_company = ? AND v.fy = ? AND v.fp = ?
            ORDER BY t.name
        """
        try:
            cur = self.conn.execute(sql, (company_id, fiscal_year, _period_code(period)))
            rows = cur.fetchall()
        except sqlite3.Error as e:
            raise DataSourceError("val_filtered", e) from e

        try:
            return [
                TagValue(
                    tag_name=row["tag_name"],
                    label=row["label"],
                    description=row["description"],
                    unit=row["unit"],
                    value=row["val"],
                )
                for row in rows
            ]
        except ValidationError as e:
            raise DataSourceError("val_filtered", e) from e

    # ----------------------------------------------------------------
    # Statement Reader
    # ----------------------------------------------------------------

    def table_exists(self, table_name: str) -> bool:
        cur = self.conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table_name,)
        )
        return cur.fetchone() is not None

    def read_statement_table(
        self,
        table_id: str,
        company_id: int,
        fiscal_year: int,
        period: PeriodLike
    ) -> List[StatementValue]:
        """
        Get tag values from one statement table.

        Raises:
            MissingTable: statement_<table_id> is not in the database
            sqlite3.Error: any other failure of the query
            ValidationError: a row holds a non-numeric value
        """
        table = statement_table_name(table_id)
        if not self.table_exists(table):
            raise MissingTable(table)

        sql = f"""
            SELECT s.val AS val, t.name AS tag_name
            FROM {table} s
            JOIN tag t ON s.fk_id_tag = t.id
            WHERE s.fk_id_company = ? AND s.fy = ? AND s.fp = ?
            ORDER BY t.name
        """
        cur = self.conn.execute(sql, (company_id, fiscal_year, _period_code(period)))
        return [
            StatementValue(tag_name=row["tag_name"], statement_table_id=table_id, value=row["val"])
            for row in cur.fetchall()
        ]

    def read_statement_values(
        self,
        company_id: int,
        fiscal_year: int,
        period: PeriodLike,
        table_ids: Iterable[str] = STATEMENT_TABLE_IDS
    ) -> StatementReadResult:
        """
        Read every known statement table for a company/period.

        A missing or failing table is logged and skipped; the rest are
        still read.
        """
        result = StatementReadResult()
        for table_id in table_ids:
            try:
                result.values.extend(
                    self.read_statement_table(table_id, company_id, fiscal_year, period)
                )
            except MissingTable as e:
                logger.info(f"Skipping {e.table_name} for company {company_id}: table does not exist")
                result.missing_tables.append(table_id)
            except (sqlite3.Error, ValidationError) as e:
                logger.error(
                    f"Failed reading {statement_table_name(table_id)} for company "
                    f"{company_id} ({fiscal_year} {_period_code(period)}): {e}"
                )
                result.failed_tables.append(table_id)
        return result

    # ----------------------------------------------------------------
    # Standardized Reader
    # ----------------------------------------------------------------

    def read_standardized(self, cik: str, fiscal_year: int, period: PeriodLike) -> StandardizedRecord:
        """
        Get the dataset_standard_statements row for a CIK/year/period.

        Identity and classification columns are dropped, as is anything
        non-numeric. No row gives an empty record.
        """
        try:
            cur = self.conn.execute(
                "SELECT * FROM dataset_standard_statements WHERE cik = ? AND fy = ? AND fp = ?",
                (cik, fiscal_year, _period_code(period))
            )
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise DataSourceError("dataset_standard_statements", e) from e

        record = StandardizedRecord(cik=cik, fiscal_year=fiscal_year, period=_period_code(period))
        if not row:
            return record

        for key in row.keys():
            if key in EXCLUDED_DATASET_COLUMNS:
                continue
            value = row[key]
            if value is None or _is_number(value):
                record.values[key] = value
        return record

    # ----------------------------------------------------------------
    # Company / Period Discovery
    # ----------------------------------------------------------------

    def search_companies(self, query: str, limit: int = None) -> List[Dict]:
        """
        Find active companies whose name or CIK contains `query`.

        Args:
            query: Name or CIK fragment (at least two characters)
            limit: Max rows (defaults to config setting)

        Returns:
            List of {id, cik, name} dicts ordered by name
        """
        query = (query or "").strip()
        if len(query) < settings.SEARCH_MIN_CHARS:
            return []

        pattern = f"%{query}%"
        try:
            cur = self.conn.execute(
                """
                SELECT id, cik, name FROM companies
                WHERE (name LIKE ? OR cik LIKE ?) AND active = 1
                ORDER BY name
                LIMIT ?
                """,
                (pattern, pattern, limit or settings.SEARCH_LIMIT)
            )
            return [dict(row) for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise DataSourceError("companies", e) from e

    def get_years(self, company_id: int) -> List[int]:
        """Fiscal years with standardized data for a company, newest first."""
        company = self.resolve_company(company_id)
        try:
            cur = self.conn.execute(
                "SELECT DISTINCT fy FROM dataset_standard_statements WHERE cik = ? ORDER BY fy DESC",
                (company.cik,)
            )
            return [row["fy"] for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise DataSourceError("dataset_standard_statements", e) from e

    def get_periods(self, company_id: int, fiscal_year: int) -> List[str]:
        """Periods with standardized data for a company/year, Q1..Q4 then FY."""
        company = self.resolve_company(company_id)
        try:
            cur = self.conn.execute(
                "SELECT DISTINCT fp FROM dataset_standard_statements WHERE cik = ? AND fy = ?",
                (company.cik, fiscal_year)
            )
            return sort_periods([row["fp"] for row in cur.fetchall()])
        except sqlite3.Error as e:
            raise DataSourceError("dataset_standard_statements", e) from e

    # ----------------------------------------------------------------
    # Statistics
    # ----------------------------------------------------------------

    def get_database_stats(self) -> Dict:
        """Get database statistics."""
        stats = {}

        cur = self.conn.execute("SELECT COUNT(*) as count FROM companies")
        stats['total_companies'] = cur.fetchone()['count']

        cur = self.conn.execute("SELECT COUNT(*) as count FROM tag")
        stats['total_tags'] = cur.fetchone()['count']

        stats['statement_tables'] = [
            table_id for table_id in STATEMENT_TABLE_IDS
            if self.table_exists(statement_table_name(table_id))
        ]
        return stats


def open_provider(db_path: Optional[str] = None) -> FinancialDataProvider:
    """Open a provider, logging where it points."""
    provider = FinancialDataProvider(db_path)
    logger.info(f"Connected to database: {provider.db_path}")
    return provider
