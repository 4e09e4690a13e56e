"""
Configuration management for the SEC Filing Data API.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

BASE_DIR: Path = Path(__file__).parent.parent
load_dotenv(BASE_DIR / ".env")


class Settings:
    """API server configuration."""

    # Paths
    BASE_DIR: Path = BASE_DIR
    DB_PATH: str = os.getenv("SEC_DB_PATH", str(BASE_DIR / "data" / "financials.db"))

    # Optional JSON file of extra {"field_name": "TagName"} pairs
    FIELD_TAG_MAP_PATH: str = os.getenv("FIELD_TAG_MAP_PATH", "")

    # Server
    API_TITLE: str = "SEC Filing Data API"
    API_DESCRIPTION: str = "Unified view of raw, statement and standardized SEC filing data"
    API_VERSION: str = "1.0.0"
    HOST: str = os.getenv("API_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("API_PORT", "8000"))

    # CORS
    CORS_ORIGINS: List[str] = ["*"]  # Allow all origins (restrict in production)

    # Database
    DB_TIMEOUT: int = int(os.getenv("DB_TIMEOUT", "30"))  # SQLite connection timeout in seconds

    # Company search
    SEARCH_LIMIT: int = int(os.getenv("SEARCH_LIMIT", "10"))
    SEARCH_MIN_CHARS: int = 2


settings = Settings()
