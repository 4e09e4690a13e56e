"""
SQLite database layer for the SEC filing data viewer.

Owns the relational schema the aggregation engine reads from: companies,
the tag dictionary, the raw val_filtered values, one statement_<code> table
per known statement form and the precomputed dataset_standard_statements
rows. Filings are assumed to be loaded already; the write helpers here exist
to build local databases from a JSON seed file and to set up test fixtures.

Usage:
    # Standalone: build a local DB from a seed file
    python database.py seed.json

    # Programmatic
    from database import DatabaseManager
    db = DatabaseManager()
    db.upsert_companies([CompanyRef(id=1, cik="320193", name="Apple Inc.")])
"""

import json
import os
import sqlite3
import sys
from pathlib import Path
from typing import Iterable

sys.path.append(str(Path(__file__).parent))

from models import CompanyRef, StatementValue, TagValue
from aggregation.mapping import FIELD_TO_TAG, STATEMENT_TABLE_IDS, statement_table_name


BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
DEFAULT_DB_PATH = os.path.join(DATA_DIR, "financials.db")

# Numeric columns carried by the standardized dataset but not mapped to a tag
DATASET_EXTRA_COLUMNS = ("free_cash_flow", "ebitda", "net_debt", "working_capital")

DATASET_VALUE_COLUMNS = tuple(FIELD_TO_TAG) + DATASET_EXTRA_COLUMNS


# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

SCHEMA_SQL = """
-- Reference data
CREATE TABLE IF NOT EXISTS companies (
    id      INTEGER PRIMARY KEY,
    cik     TEXT NOT NULL,
    name    TEXT DEFAULT '',
    active  INTEGER DEFAULT 1
);

CREATE TABLE IF NOT EXISTS tag (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL UNIQUE,
    label       TEXT,
    description TEXT
);

-- Raw filtered values
CREATE TABLE IF NOT EXISTS val_filtered (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    fk_id_company INTEGER NOT NULL REFERENCES companies(id),
    fk_id_tag     INTEGER NOT NULL REFERENCES tag(id),
    fy            INTEGER NOT NULL,
    fp            TEXT NOT NULL,
    val           REAL,
    unit          TEXT
);

CREATE INDEX IF NOT EXISTS idx_vf_company_fy_fp ON val_filtered(fk_id_company, fy, fp);
CREATE INDEX IF NOT EXISTS idx_companies_cik ON companies(cik);
"""

STATEMENT_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    fk_id_company INTEGER NOT NULL REFERENCES companies(id),
    fk_id_tag     INTEGER NOT NULL REFERENCES tag(id),
    fy            INTEGER NOT NULL,
    fp            TEXT NOT NULL,
    val           REAL
);

CREATE INDEX IF NOT EXISTS idx_{table}_company_fy_fp ON {table}(fk_id_company, fy, fp);
"""


def _dataset_schema_sql() -> str:
    value_cols = ",\n".join(f"    {col} REAL" for col in DATASET_VALUE_COLUMNS)
    return f"""
CREATE TABLE IF NOT EXISTS dataset_standard_statements (
    id   INTEGER PRIMARY KEY AUTOINCREMENT,
    cik  TEXT NOT NULL,
    name TEXT DEFAULT '',
    sic  TEXT DEFAULT '',
    fy   INTEGER NOT NULL,
    fp   TEXT NOT NULL,
{value_cols},
    UNIQUE(cik, fy, fp)
);
"""


class DatabaseManager:
    """SQLite database manager for the filing data store."""

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        statement_tables: Iterable[str] = STATEMENT_TABLE_IDS,
    ):
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self.db_path = db_path
        self.statement_tables = tuple(statement_tables)
        self.conn = sqlite3.connect(db_path)
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self.conn.row_factory = sqlite3.Row
        self._create_schema()

    def _create_schema(self):
        self.conn.executescript(SCHEMA_SQL)
        for table_id in self.statement_tables:
            self.conn.executescript(
                STATEMENT_TABLE_SQL.format(table=statement_table_name(table_id))
            )
        self.conn.executescript(_dataset_schema_sql())
        self.conn.commit()

    def close(self):
        self.conn.close()

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def upsert_companies(self, companies: list[CompanyRef], active: bool = True) -> int:
        """Insert or replace company records. Returns count written."""
        sql = """
            INSERT OR REPLACE INTO companies (id, cik, name, active)
            VALUES (?, ?, ?, ?)
        """
        rows = [(c.id, c.cik, c.name, 1 if active else 0) for c in companies]
        self.conn.executemany(sql, rows)
        self.conn.commit()
        return len(rows)

    def get_company(self, company_id: int) -> dict | None:
        cur = self.conn.execute("SELECT * FROM companies WHERE id = ?", (company_id,))
        row = cur.fetchone()
        return dict(row) if row else None

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def ensure_tag(self, name: str, label: str | None = None, description: str | None = None) -> int:
        """
        Return the id of tag `name`, creating it if needed.
        Label and description are only filled in when not already set.
        """
        self.conn.execute(
            "INSERT OR IGNORE INTO tag (name, label, description) VALUES (?, ?, ?)",
            (name, label, description),
        )
        self.conn.execute(
            """
            UPDATE tag
            SET label = COALESCE(label, ?), description = COALESCE(description, ?)
            WHERE name = ?
            """,
            (label, description, name),
        )
        cur = self.conn.execute("SELECT id FROM tag WHERE name = ?", (name,))
        return cur.fetchone()["id"]

    # ------------------------------------------------------------------
    # Raw values
    # ------------------------------------------------------------------

    def insert_tag_values(self, company_id: int, fy: int, fp: str, values: list[TagValue]) -> int:
        """Insert val_filtered rows for one company/period."""
        sql = """
            INSERT INTO val_filtered (fk_id_company, fk_id_tag, fy, fp, val, unit)
            VALUES (?, ?, ?, ?, ?, ?)
        """
        rows = []
        for v in values:
            tag_id = self.ensure_tag(v.tag_name, v.label, v.description)
            rows.append((company_id, tag_id, fy, fp, v.value, v.unit))
        self.conn.executemany(sql, rows)
        self.conn.commit()
        return len(rows)

    # ------------------------------------------------------------------
    # Statement tables
    # ------------------------------------------------------------------

    def insert_statement_values(self, company_id: int, fy: int, fp: str, values: list[StatementValue]) -> int:
        """
        Insert statement rows; each value goes to the table named by its
        statement_table_id.
        """
        count = 0
        for v in values:
            if v.statement_table_id not in self.statement_tables:
                raise ValueError(f"Unknown statement table: {v.statement_table_id}")
            tag_id = self.ensure_tag(v.tag_name)
            self.conn.execute(
                f"""
                INSERT INTO {statement_table_name(v.statement_table_id)}
                    (fk_id_company, fk_id_tag, fy, fp, val)
                VALUES (?, ?, ?, ?, ?)
                """,
                (company_id, tag_id, fy, fp, v.value),
            )
            count += 1
        self.conn.commit()
        return count

    # ------------------------------------------------------------------
    # Standardized dataset
    # ------------------------------------------------------------------

    def upsert_dataset_standard(
        self,
        cik: str,
        fy: int,
        fp: str,
        values: dict,
        name: str = "",
        sic: str = "",
    ) -> int:
        """Insert or replace one dataset_standard_statements row."""
        unknown = set(values) - set(DATASET_VALUE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown dataset columns: {sorted(unknown)}")

        columns = ["cik", "name", "sic", "fy", "fp"] + list(values)
        placeholders = ", ".join("?" * len(columns))
        sql = f"""
            INSERT OR REPLACE INTO dataset_standard_statements ({', '.join(columns)})
            VALUES ({placeholders})
        """
        self.conn.execute(sql, [cik, name, sic, fy, fp] + list(values.values()))
        self.conn.commit()
        return 1

    # ------------------------------------------------------------------
    # Generic query
    # ------------------------------------------------------------------

    def query(self, sql: str, params: tuple = ()) -> list[dict]:
        """Execute a raw SQL query and return results as list of dicts."""
        cur = self.conn.execute(sql, params)
        return [dict(r) for r in cur.fetchall()]

    # ------------------------------------------------------------------
    # Bulk population from a seed file
    # ------------------------------------------------------------------

    def populate_from_json(self, path: str) -> dict:
        """
        Load companies and per-period values from a seed JSON file:

            {
              "companies": [{"id": 1, "cik": "320193", "name": "Apple Inc.", "active": true}],
              "periods": [{
                  "company_id": 1, "fy": 2023, "fp": "FY",
                  "val_filtered": [{"tag_name": "Revenues", "value": 383285000000, "unit": "USD"}],
                  "statements": {"220000": {"Revenues": 383285000000}},
                  "dataset_standard": {"revenues": 383285000000}
              }]
            }

        Returns row counts per table group.
        """
        print(f"Populating database from {path}...\n")
        with open(path, "r") as f:
            seed = json.load(f)

        counts = {"companies": 0, "val_filtered": 0, "statements": 0, "dataset_standard": 0}

        ciks = {}
        for c in seed.get("companies", []):
            company = CompanyRef(id=c["id"], cik=str(c["cik"]), name=c.get("name", ""))
            counts["companies"] += self.upsert_companies([company], active=c.get("active", True))
            ciks[company.id] = (company.cik, company.name)

        for p in seed.get("periods", []):
            company_id, fy, fp = p["company_id"], p["fy"], p["fp"]

            raw = [TagValue(**row) for row in p.get("val_filtered", [])]
            counts["val_filtered"] += self.insert_tag_values(company_id, fy, fp, raw)

            stmt = [
                StatementValue(tag_name=tag, statement_table_id=table_id, value=value)
                for table_id, tags in p.get("statements", {}).items()
                for tag, value in tags.items()
            ]
            counts["statements"] += self.insert_statement_values(company_id, fy, fp, stmt)

            if p.get("dataset_standard"):
                if company_id in ciks:
                    cik, name = ciks[company_id]
                else:
                    row = self.get_company(company_id)
                    if not row:
                        raise ValueError(f"Seed period references unknown company {company_id}")
                    cik, name = row["cik"], row["name"]
                counts["dataset_standard"] += self.upsert_dataset_standard(
                    cik, fy, fp, p["dataset_standard"], name=name
                )

        for table, n in counts.items():
            print(f"  {table + ':':<22}{n} rows")
        print(f"\nDatabase populated: {self.db_path}")
        return counts


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python database.py <seed.json> [db_path]")
        sys.exit(1)
    db = DatabaseManager(sys.argv[2] if len(sys.argv) > 2 else DEFAULT_DB_PATH)
    db.populate_from_json(sys.argv[1])
    db.close()
