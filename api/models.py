"""
Pydantic models for API request/response validation.
Auto-generates OpenAPI documentation.
"""

from pydantic import BaseModel
from typing import List, Optional

from models import MergedView, SeparatedView  # noqa: F401  (re-exported as response models)


class CompanySearchItem(BaseModel):
    """Company search hit."""
    id: int
    cik: str
    name: str


class DatabaseStatsResponse(BaseModel):
    """Database statistics response."""
    total_companies: int
    total_tags: int
    statement_tables: List[str]


class HealthResponse(BaseModel):
    """API health check response."""
    service: str
    version: str
    status: str
    database_path: str
    database_stats: Optional[DatabaseStatsResponse] = None

