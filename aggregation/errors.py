"""Exceptions raised by the aggregation engine and its source readers."""


class AggregationError(Exception):
    """Base class for aggregation failures."""


class NotFound(AggregationError):
    """The company id does not resolve to a company."""

    def __init__(self, company_id):
        self.company_id = company_id
        super().__init__(f"Company '{company_id}' not found")


class DataSourceError(AggregationError):
    """A source query failed for a reason other than returning no rows."""

    def __init__(self, source: str, cause: Exception):
        self.source = source
        self.cause = cause
        super().__init__(f"{source} query failed: {cause}")


class MissingTable(AggregationError):
    """A statement table is not present in the store."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' does not exist")
