"""
REST API for SEC filing data.

Serves the unified raw / statement / standardized view produced by the
aggregation engine, plus the company, year and period lookups a search UI
needs.
"""

__version__ = "1.0.0"
