"""
FastAPI application for the SEC Filing Data API.

Exposes the aggregated filing view and the lookups a search UI needs,
with auto-generated OpenAPI documentation at /docs.
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from typing import List, Optional
import logging

from .config import settings
from .data_access import FinancialDataProvider, open_provider
from .models import CompanySearchItem, HealthResponse
from aggregation import DataSourceError, FieldTagMapper, FinancialAggregator, NotFound, OutputShape
from models import FiscalPeriod

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

_provider: Optional[FinancialDataProvider] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the shared database connection on shutdown."""
    global _provider
    yield
    if _provider is not None:
        _provider.close()
        _provider = None
        logger.info("Database connection closed")


# Initialize FastAPI app
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Field/tag pairs are fixed for the life of the process
mapper = FieldTagMapper.from_json(settings.FIELD_TAG_MAP_PATH)


def get_provider() -> FinancialDataProvider:
    """Shared read-only provider, opened on first use."""
    global _provider
    if _provider is None:
        try:
            _provider = open_provider()
        except FileNotFoundError as e:
            logger.error(f"Failed to connect to database: {e}")
            raise HTTPException(status_code=503, detail="Database unavailable")
    return _provider


def get_aggregator(provider: FinancialDataProvider = Depends(get_provider)) -> FinancialAggregator:
    return FinancialAggregator(provider, mapper)


# ----------------------------------------------------------------
# Health & Info
# ----------------------------------------------------------------

@app.get("/", response_model=HealthResponse, tags=["Health"])
def root(provider: FinancialDataProvider = Depends(get_provider)):
    """
    API health check and information.

    Returns service status and database statistics.
    """
    try:
        stats = provider.get_database_stats()
        return {
            "service": settings.API_TITLE,
            "version": settings.API_VERSION,
            "status": "healthy",
            "database_path": provider.db_path,
            "database_stats": stats
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ----------------------------------------------------------------
# Company Lookup
# ----------------------------------------------------------------

@app.get("/api/companies/search", response_model=List[CompanySearchItem], tags=["Companies"])
def search_companies(
    q: str = Query("", description="Company name or CIK fragment (min. 2 characters)"),
    provider: FinancialDataProvider = Depends(get_provider)
):
    """
    Autocomplete search over active companies by name or CIK.

    Returns at most `SEARCH_LIMIT` matches ordered by name.
    """
    try:
        return provider.search_companies(q)
    except DataSourceError as e:
        logger.error(f"Error searching companies for '{q}': {e}")
        raise HTTPException(status_code=500, detail="Database error")


@app.get("/api/companies/{company_id}/years", response_model=List[int], tags=["Companies"])
def get_company_years(
    company_id: int,
    provider: FinancialDataProvider = Depends(get_provider)
):
    """
    Fiscal years with standardized data for a company, newest first.
    """
    try:
        return provider.get_years(company_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataSourceError as e:
        logger.error(f"Error getting years for company {company_id}: {e}")
        raise HTTPException(status_code=500, detail="Database error")


@app.get("/api/companies/{company_id}/periods", response_model=List[str], tags=["Companies"])
def get_company_periods(
    company_id: int,
    year: int = Query(..., description="Fiscal year"),
    provider: FinancialDataProvider = Depends(get_provider)
):
    """
    Periods with standardized data for a company/year (Q1..Q4, then FY).
    """
    try:
        return provider.get_periods(company_id, year)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataSourceError as e:
        logger.error(f"Error getting periods for company {company_id}/{year}: {e}")
        raise HTTPException(status_code=500, detail="Database error")


# ----------------------------------------------------------------
# Financial Data
# ----------------------------------------------------------------

@app.get("/api/financial-data/{company_id}", response_model=None, tags=["Financial Data"])
def get_financial_data(
    company_id: int,
    year: int = Query(..., description="Fiscal year"),
    period: FiscalPeriod = Query(..., description="Fiscal period (Q1, Q2, Q3, Q4, FY)"),
    shape: OutputShape = Query(OutputShape.MERGED, description="'merged' (one entry per tag) or 'separated' (one list per source)"),
    aggregator: FinancialAggregator = Depends(get_aggregator)
):
    """
    Unified view of a company's filing data for one fiscal period.

    **merged**: one entry per tag found in val_filtered or any statement
    table, with its raw value, per-statement values and the standardized
    value when the tag maps to a dataset field.

    **separated**: val_filtered, statement and standardized rows listed
    independently; every non-null standardized field is included.
    """
    try:
        view = aggregator.aggregate(company_id, year, period, shape)
        return view.model_dump(mode="json")
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataSourceError as e:
        logger.error(f"Error getting financial data for company {company_id} {year} {period.value}: {e}")
        raise HTTPException(status_code=500, detail="Database error")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="info"
    )
