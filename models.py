"""
Pydantic data models for the SEC filing data viewer.

These models describe the read-only entities that flow through the
aggregation engine: the company reference, the fiscal period key, one row
from each of the three data sources and the merged, tag-keyed entry that
the API returns.
"""

from pydantic import BaseModel, BeforeValidator, Field
from typing import Annotated, Dict, List, Optional, Union
from enum import Enum


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

def _whole_to_int(value):
    # SQLite REAL columns hand back whole amounts as floats
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# Filing amount; whole numbers stay int through JSON
Amount = Annotated[Optional[Union[int, float]], BeforeValidator(_whole_to_int)]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FiscalPeriod(str, Enum):
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"
    FY = "FY"


# Display order: quarters first, full year last
PERIOD_ORDER = ["Q1", "Q2", "Q3", "Q4", "FY"]


def sort_periods(periods: list[str]) -> list[str]:
    """Sort period codes Q1 < Q2 < Q3 < Q4 < FY; unknown codes go last."""
    return sorted(
        periods,
        key=lambda p: PERIOD_ORDER.index(p) if p in PERIOD_ORDER else len(PERIOD_ORDER),
    )


# ---------------------------------------------------------------------------
# Request-scoped entities
# ---------------------------------------------------------------------------

class CompanyRef(BaseModel):
    """
    A company as known to the store.
    `id` keys the raw-value and statement tables, `cik` keys the
    standardized dataset.
    """
    id: int
    cik: str
    name: str = ""

    @property
    def padded_cik(self) -> str:
        return str(self.cik).zfill(10)


class PeriodKey(BaseModel):
    fiscal_year: int
    period: FiscalPeriod


class TagValue(BaseModel):
    """One row from the raw-value (val_filtered) source."""
    tag_name: str
    label: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    value: Amount = None


class StatementValue(BaseModel):
    """One row from one statement table."""
    tag_name: str
    statement_table_id: str
    value: Amount = None


class StatementReadResult(BaseModel):
    """Rows from every statement table that could be read, plus the ones that could not."""
    values: List[StatementValue] = Field(default_factory=list)
    missing_tables: List[str] = Field(default_factory=list)
    failed_tables: List[str] = Field(default_factory=list)


class StandardizedRecord(BaseModel):
    """Numeric fields of one dataset_standard_statements row."""
    cik: Optional[str] = None
    fiscal_year: Optional[int] = None
    period: Optional[str] = None
    values: Dict[str, Amount] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.values


class UnifiedEntry(BaseModel):
    """A tag with its value from every source that reports it."""
    tag_name: str
    label: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    raw_value: Amount = None
    statement_values: Dict[str, Amount] = Field(default_factory=dict)
    standardized_value: Amount = None


class DatasetField(BaseModel):
    """A non-null standardized field, as listed in the source-separated view."""
    field_name: str
    tag_name: str
    value: Amount = None
    mapped: bool = False


# ---------------------------------------------------------------------------
# Aggregated views
# ---------------------------------------------------------------------------

class CompanyInfo(BaseModel):
    name: str
    cik: str


class MergedView(BaseModel):
    """Tag-centric view: one entry per tag seen in the raw or statement sources."""
    company: CompanyInfo
    year: int
    period: FiscalPeriod
    data: List[UnifiedEntry] = Field(default_factory=list)


class SeparatedView(BaseModel):
    """Source-separated view: each source listed on its own, no cross-source merge."""
    company: CompanyInfo
    year: int
    period: FiscalPeriod
    val_filtered_data: List[TagValue] = Field(default_factory=list)
    statement_data: List[StatementValue] = Field(default_factory=list)
    dataset_standard_data: List[DatasetField] = Field(default_factory=list)
