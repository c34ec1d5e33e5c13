"""
Market data API endpoints.

Stock quotes come from Alpha Vantage, crypto quotes from CoinGecko. Both are
served from the shared price cache when fresh.
"""

import asyncio
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from portfolio_tracker.dependencies import get_crypto_provider, get_stock_provider
from portfolio_tracker.schemas.holding import AssetType
from portfolio_tracker.schemas.market_data import ProviderInfo, SearchResponse
from portfolio_tracker.services.market_data import (
    CoinGeckoProvider,
    MarketDataProvider,
    Quote,
    SymbolValidationError,
    validate_symbol,
)

logger = logging.getLogger(__name__)

router = APIRouter()
search_router = APIRouter()


# ============================================================================
# Helpers
# ============================================================================


def _validate_symbol(symbol: str) -> str:
    """Normalise and validate a path symbol. Raises 400 on invalid format."""
    try:
        return validate_symbol(symbol)
    except SymbolValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _quote_or_404(quote: Optional[Quote], kind: str) -> Quote:
    if quote is None:
        raise HTTPException(status_code=404, detail=f"Failed to fetch {kind} data")
    return quote


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/providers", response_model=List[ProviderInfo])
async def get_provider_info(
    stock_provider: MarketDataProvider = Depends(get_stock_provider),
    crypto_provider: CoinGeckoProvider = Depends(get_crypto_provider),
):
    """Describe the configured providers and their rate limits."""
    return [
        ProviderInfo(
            asset_type=asset_type.value,
            name=provider.get_provider_name(),
            supports_batch=provider.supports_batch(),
            rate_limits=provider.get_rate_limits(),
        )
        for asset_type, provider in (
            (AssetType.STOCK, stock_provider),
            (AssetType.CRYPTO, crypto_provider),
        )
    ]


@router.get("/stocks/{symbol}", response_model=Quote)
async def get_stock_quote(
    symbol: str,
    stock_provider: MarketDataProvider = Depends(get_stock_provider),
):
    """Get the current stock quote."""
    quote = await stock_provider.get_price(_validate_symbol(symbol))
    return _quote_or_404(quote, "stock")


@router.get("/crypto/{symbol}", response_model=Quote)
async def get_crypto_quote(
    symbol: str,
    crypto_provider: CoinGeckoProvider = Depends(get_crypto_provider),
):
    """Get the current crypto quote."""
    quote = await crypto_provider.get_price(_validate_symbol(symbol))
    return _quote_or_404(quote, "crypto")


@router.get("/{symbol}", response_model=Quote)
async def get_quote(
    symbol: str,
    type: Optional[str] = Query(None, description="Asset type: 'stock' or 'crypto'"),
    stock_provider: MarketDataProvider = Depends(get_stock_provider),
    crypto_provider: CoinGeckoProvider = Depends(get_crypto_provider),
):
    """Get the current quote for a stock or crypto symbol."""
    if type not in (AssetType.STOCK.value, AssetType.CRYPTO.value):
        raise HTTPException(status_code=400, detail="Asset type must be 'stock' or 'crypto'")

    validated = _validate_symbol(symbol)
    if type == AssetType.STOCK.value:
        quote = await stock_provider.get_price(validated)
    else:
        quote = await crypto_provider.get_price(validated)

    return _quote_or_404(quote, "price")


@search_router.get("", response_model=SearchResponse)
async def search_symbols(
    q: str = Query(..., min_length=1, max_length=50, description="Symbol or name"),
    type: Literal["stock", "crypto", "all"] = Query("all"),
    stock_provider: MarketDataProvider = Depends(get_stock_provider),
    crypto_provider: CoinGeckoProvider = Depends(get_crypto_provider),
):
    """Search stocks and/or crypto; the two providers are queried concurrently."""
    query = q.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Search query is required")

    searches = {}
    if type in ("stock", "all"):
        searches["stocks"] = stock_provider.search(query)
    if type in ("crypto", "all"):
        searches["crypto"] = crypto_provider.search(query)

    found = await asyncio.gather(*searches.values())
    results = dict(zip(searches.keys(), found))

    logger.debug(
        "symbol_search",
        extra={"query": query, "counts": {k: len(v) for k, v in results.items()}},
    )

    return SearchResponse(results=results)
