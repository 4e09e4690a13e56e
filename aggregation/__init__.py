"""
Financial-data aggregation engine.

Reconciles the raw tag/value table, the per-statement tables and the
standardized dataset into one tag-keyed view for a company and period.
"""

from .errors import AggregationError, DataSourceError, MissingTable, NotFound
from .mapping import FieldTagMapper, STATEMENT_TABLE_IDS, prettify_field_name
from .engine import FinancialAggregator, OutputShape

__all__ = [
    "AggregationError",
    "DataSourceError",
    "MissingTable",
    "NotFound",
    "FieldTagMapper",
    "STATEMENT_TABLE_IDS",
    "prettify_field_name",
    "FinancialAggregator",
    "OutputShape",
]
