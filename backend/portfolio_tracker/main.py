"""FastAPI main application."""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portfolio_tracker.api.v1 import dashboard, market_data, portfolios
from portfolio_tracker.config import settings
from portfolio_tracker.core.cache import PriceCache
from portfolio_tracker.core.logging_config import setup_logging
from portfolio_tracker.middleware.error_handler import ErrorHandlerMiddleware
from portfolio_tracker.middleware.request_logging import RequestLoggingMiddleware
from portfolio_tracker.services.market_data import (
    AlphaVantageProvider,
    CoinGeckoProvider,
    SymbolValidationError,
)
from portfolio_tracker.services.valuation_service import InvalidInputError

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()

    http_client = httpx.AsyncClient(timeout=settings.MARKET_DATA_TIMEOUT_SECONDS)
    price_cache = PriceCache()

    app.state.http_client = http_client
    app.state.price_cache = price_cache
    app.state.stock_provider = AlphaVantageProvider(
        price_cache,
        http_client=http_client,
        quote_ttl=settings.STOCK_QUOTE_CACHE_TTL,
        search_ttl=settings.SEARCH_CACHE_TTL,
        timeout=settings.MARKET_DATA_TIMEOUT_SECONDS,
    )
    app.state.crypto_provider = CoinGeckoProvider(
        price_cache,
        http_client=http_client,
        symbol_overrides=settings.COINGECKO_SYMBOL_OVERRIDES,
        quote_ttl=settings.CRYPTO_QUOTE_CACHE_TTL,
        search_ttl=settings.SEARCH_CACHE_TTL,
        timeout=settings.MARKET_DATA_TIMEOUT_SECONDS,
    )

    _logger.info(
        "application_started",
        extra={"app_version": settings.APP_VERSION, "environment": settings.ENVIRONMENT},
    )

    yield

    await http_client.aclose()
    price_cache.clear()
    _logger.info("application_stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handler - Catch uncaught exceptions
app.add_middleware(ErrorHandlerMiddleware)

# Request logging - Outermost, so 500s from the error handler are logged too
app.add_middleware(RequestLoggingMiddleware)


def _make_json_serializable(obj):
    """Recursively convert non-JSON-serializable types to serializable ones."""
    if isinstance(obj, dict):
        return {k: _make_json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_make_json_serializable(i) for i in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, type):
        return str(obj)
    if isinstance(obj, Exception):
        return str(obj)
    return obj


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    _logger.debug("Validation error on %s: %s", request.url, exc.errors())
    errors = _make_json_serializable(exc.errors())
    return JSONResponse(
        status_code=422,
        content={"detail": errors},
    )


@app.exception_handler(InvalidInputError)
@app.exception_handler(SymbolValidationError)
async def invalid_input_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(portfolios.router, prefix="/api/v1/portfolios", tags=["Portfolios"])
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])
app.include_router(market_data.router, prefix="/api/v1/market-data", tags=["Market Data"])
app.include_router(market_data.search_router, prefix="/api/v1/search", tags=["Search"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("portfolio_tracker.main:app", host="127.0.0.1", port=8000, reload=settings.DEBUG)
