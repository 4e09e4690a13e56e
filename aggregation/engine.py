"""
Aggregation engine.

Given a company and a fiscal year/period, collects the three sources once
and lays them out in one of two shapes:

- merged:    one UnifiedEntry per tag seen in val_filtered or any statement
             table, carrying the standardized value when the tag maps to a
             dataset field. Standardized-only fields are not turned into
             entries.
- separated: each source as its own list; every non-null standardized field
             is listed, mapped or not.
"""

import logging
from enum import Enum
from typing import Dict, List, Union

from pydantic import BaseModel, Field

from models import (
    Amount,
    CompanyInfo,
    CompanyRef,
    DatasetField,
    FiscalPeriod,
    MergedView,
    SeparatedView,
    StandardizedRecord,
    StatementReadResult,
    StatementValue,
    TagValue,
    UnifiedEntry,
)
from .mapping import DEFAULT_MAPPER, FieldTagMapper

logger = logging.getLogger(__name__)


class OutputShape(str, Enum):
    MERGED = "merged"
    SEPARATED = "separated"


class SourceData(BaseModel):
    """Everything the three source readers returned for one request."""
    company: CompanyRef
    fiscal_year: int
    period: FiscalPeriod
    tag_values: List[TagValue] = Field(default_factory=list)
    statements: StatementReadResult = Field(default_factory=StatementReadResult)
    standardized: StandardizedRecord = Field(default_factory=StandardizedRecord)


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------

def group_statement_values(values: List[StatementValue]) -> Dict[str, Dict[str, Amount]]:
    """tag -> {table id -> value}, tables in the order they were read."""
    grouped: Dict[str, Dict[str, Amount]] = {}
    for v in values:
        grouped.setdefault(v.tag_name, {})[v.statement_table_id] = v.value
    return grouped


def merge_by_tag(
    tag_values: List[TagValue],
    statement_values: List[StatementValue],
    standardized: StandardizedRecord,
    mapper: FieldTagMapper = DEFAULT_MAPPER,
) -> List[UnifiedEntry]:
    """Tag-centric merge, ordered by tag name."""
    raw = {tv.tag_name: tv for tv in tag_values}
    statements = group_statement_values(statement_values)

    entries = []
    for tag in sorted(set(raw) | set(statements)):
        r = raw.get(tag)
        field = mapper.field_for_tag(tag)
        entries.append(UnifiedEntry(
            tag_name=tag,
            label=(r.label if r and r.label else tag),
            description=r.description if r else None,
            unit=r.unit if r else None,
            raw_value=r.value if r else None,
            statement_values=statements.get(tag, {}),
            standardized_value=standardized.values.get(field) if field else None,
        ))
    return entries


def list_standardized_fields(
    standardized: StandardizedRecord,
    mapper: FieldTagMapper = DEFAULT_MAPPER,
) -> List[DatasetField]:
    """Every non-null standardized field with its tag, or a readable name when unmapped."""
    return [
        DatasetField(
            field_name=field,
            tag_name=mapper.display_tag(field),
            value=value,
            mapped=mapper.tag_for_field(field) is not None,
        )
        for field, value in standardized.values.items()
        if value is not None
    ]


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class FinancialAggregator:
    """
    Single entry point for both output shapes.

    `provider` is anything with resolve_company / read_tag_values /
    read_statement_values / read_standardized (see api.data_access).
    """

    def __init__(self, provider, mapper: FieldTagMapper = DEFAULT_MAPPER):
        self.provider = provider
        self.mapper = mapper

    def collect(self, company_id: int, fiscal_year: int, period: FiscalPeriod) -> SourceData:
        """
        Resolve the company, then run the three readers.

        Raises:
            NotFound: unknown company id
            DataSourceError: raw-value or standardized query failed
        """
        period = FiscalPeriod(period)
        company = self.provider.resolve_company(company_id)

        tag_values = self.provider.read_tag_values(company.id, fiscal_year, period)
        statements = self.provider.read_statement_values(company.id, fiscal_year, period)
        standardized = self.provider.read_standardized(company.cik, fiscal_year, period)

        logger.debug(
            f"Collected company {company.id} {fiscal_year} {period.value}: "
            f"{len(tag_values)} raw, {len(statements.values)} statement, "
            f"{len(standardized.values)} standardized"
        )
        if statements.failed_tables:
            logger.warning(
                f"Statement tables failed for company {company.id}: {', '.join(statements.failed_tables)}"
            )

        return SourceData(
            company=company,
            fiscal_year=fiscal_year,
            period=period,
            tag_values=tag_values,
            statements=statements,
            standardized=standardized,
        )

    def shape(self, sources: SourceData, shape: OutputShape = OutputShape.MERGED) -> Union[MergedView, SeparatedView]:
        company = CompanyInfo(name=sources.company.name, cik=sources.company.cik)
        shape = OutputShape(shape)

        if shape is OutputShape.SEPARATED:
            return SeparatedView(
                company=company,
                year=sources.fiscal_year,
                period=sources.period,
                val_filtered_data=sources.tag_values,
                statement_data=sources.statements.values,
                dataset_standard_data=list_standardized_fields(sources.standardized, self.mapper),
            )

        return MergedView(
            company=company,
            year=sources.fiscal_year,
            period=sources.period,
            data=merge_by_tag(
                sources.tag_values,
                sources.statements.values,
                sources.standardized,
                self.mapper,
            ),
        )

    def aggregate(
        self,
        company_id: int,
        fiscal_year: int,
        period: FiscalPeriod,
        shape: OutputShape = OutputShape.MERGED,
    ) -> Union[MergedView, SeparatedView]:
        """Collect the sources for one company/period and lay them out in `shape`."""
        view = self.shape(self.collect(company_id, fiscal_year, period), shape)
        logger.info(f"Aggregated company {company_id} {fiscal_year} {FiscalPeriod(period).value} as {OutputShape(shape).value}")
        return view
