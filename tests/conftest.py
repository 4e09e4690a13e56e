"""Shared fixtures for the test suite."""

import pytest

from database import DatabaseManager
from models import CompanyRef, StatementValue, TagValue
from aggregation.mapping import STATEMENT_TABLE_IDS
from api.data_access import FinancialDataProvider


APPLE = CompanyRef(id=1, cik="320193", name="Apple Inc.")
MICROSOFT = CompanyRef(id=2, cik="789019", name="Microsoft Corp")
SPREAD = CompanyRef(id=3, cik="111111", name="Spread Holdings")
DORMANT = CompanyRef(id=9, cik="999999", name="Applied Dormant Co")

REVENUE = 383285000000
NET_INCOME = 96995000000


def seed(db: DatabaseManager) -> None:
    """Fixed fixture data; see test modules for what each piece exercises."""
    db.upsert_companies([APPLE, MICROSOFT, SPREAD])
    db.upsert_companies([DORMANT], active=False)

    # Apple FY2023: all three sources
    db.insert_tag_values(APPLE.id, 2023, "FY", [
        TagValue(tag_name="Revenues", label="Revenues", description="Total revenue", unit="USD", value=REVENUE),
        TagValue(tag_name="NetIncomeLoss", label="Net Income (Loss)", unit="USD", value=NET_INCOME),
        TagValue(tag_name="Assets", label="Assets", unit="USD", value=352583000000),
        TagValue(tag_name="CommitmentsAndContingencies", unit="USD", value=None),
    ])
    apple_statements = [
        StatementValue(tag_name="Revenues", statement_table_id="220000", value=REVENUE),
        StatementValue(tag_name="NetIncomeLoss", statement_table_id="220000", value=NET_INCOME),
        StatementValue(tag_name="NetIncomeLoss", statement_table_id="510000", value=97000000000),
        StatementValue(tag_name="AssetsCurrent", statement_table_id="104000", value=143566000000),
    ]
    db.insert_statement_values(APPLE.id, 2023, "FY", [
        v for v in apple_statements if v.statement_table_id in db.statement_tables
    ])
    db.upsert_dataset_standard(APPLE.cik, 2023, "FY", {
        "revenues": REVENUE,
        "net_profit": NET_INCOME,
        "assets": 352583000000,
        "assets_current": 143566000000,
        "gross_profit": 169148000000,
        "free_cash_flow": 99584000000,
        "ebitda": None,
    }, name=APPLE.name, sic="3571")

    # Apple: other periods, standardized only
    db.upsert_dataset_standard(APPLE.cik, 2022, "FY", {"revenues": 394328000000})
    db.upsert_dataset_standard(APPLE.cik, 2023, "Q3", {"revenues": 81797000000})
    db.upsert_dataset_standard(APPLE.cik, 2023, "Q1", {"revenues": 117154000000})

    # Microsoft FY2023: standardized, unmapped fields only
    db.upsert_dataset_standard(MICROSOFT.cik, 2023, "FY", {"free_cash_flow": 59475000000, "net_debt": None})

    # Spread Holdings FY2023: one tag in every statement table
    db.insert_statement_values(SPREAD.id, 2023, "FY", [
        StatementValue(tag_name=f"Tag{table_id}", statement_table_id=table_id, value=float(i + 1))
        for i, table_id in enumerate(db.statement_tables)
    ])


def build_db(path, statement_tables=STATEMENT_TABLE_IDS) -> str:
    db = DatabaseManager(db_path=str(path), statement_tables=statement_tables)
    seed(db)
    # Rollback journal, so read-only opens don't depend on -wal/-shm files
    db.conn.execute("PRAGMA journal_mode=DELETE")
    db.close()
    return str(path)


@pytest.fixture
def tmp_db(tmp_path):
    """Fresh, empty DatabaseManager backed by a real SQLite DB in tmp_path."""
    db = DatabaseManager(db_path=str(tmp_path / "test.db"))
    yield db
    db.close()


@pytest.fixture
def db_path(tmp_path):
    """Path to a seeded database with every statement table present."""
    return build_db(tmp_path / "seeded.db")


@pytest.fixture
def provider(db_path):
    p = FinancialDataProvider(db_path)
    yield p
    p.close()


@pytest.fixture
def provider_factory(tmp_path):
    """Build a seeded database with a chosen set of statement tables and open it."""
    opened = []

    def _make(statement_tables=STATEMENT_TABLE_IDS, name="custom.db"):
        path = build_db(tmp_path / name, statement_tables)
        p = FinancialDataProvider(path)
        opened.append(p)
        return p

    yield _make
    for p in opened:
        p.close()
