"""
Alpha Vantage market data provider (stocks).

Free tier: 25 API calls/day, 5 calls/minute.
- Global quote (current price), one symbol per call
- Symbol search

There is no batch quote endpoint, so every distinct symbol costs one call.
Quotes are cached for STOCK_QUOTE_CACHE_TTL (5 minutes by default), which is
what keeps a dashboard refresh inside the per-minute limit.

Requires: ALPHA_VANTAGE_API_KEY environment variable.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from portfolio_tracker.config import settings
from portfolio_tracker.core.cache import PriceCache

from .base_provider import REQUEST_TIMEOUT, MarketDataProvider, Quote, SearchResult
from .security import PriceValidationError, parse_decimal, parse_price, parse_volume

logger = logging.getLogger(__name__)

# Alpha Vantage answers throttled or invalid calls with HTTP 200 and one of these keys
_PROVIDER_MESSAGE_KEYS = ("Note", "Information", "Error Message")

_SEARCH_TYPE_MAP = {
    "equity": "stock",
    "etf": "etf",
    "mutual fund": "mutual_fund",
    "cryptocurrency": "crypto",
}


def parse_global_quote(payload: Any, symbol: str) -> Optional[Quote]:
    """
    Build a Quote from a GLOBAL_QUOTE response.

    Alpha Vantage Global Quote keys:
    "01. symbol", "02. open", "03. high", "04. low", "05. price",
    "06. volume", "07. latest trading day", "08. previous close",
    "09. change", "10. change percent"

    Returns None when the payload is empty or has no usable price.
    """
    if not isinstance(payload, dict):
        return None

    data = payload.get("Global Quote")
    if not isinstance(data, dict) or not data:
        return None

    try:
        price = parse_price(data.get("05. price"), symbol)
    except PriceValidationError as e:
        logger.warning("Alpha Vantage quote rejected for %s: %s", symbol, e)
        return None

    return Quote(
        symbol=str(data.get("01. symbol") or symbol).upper(),
        price=price,
        change=parse_decimal(data.get("09. change")),
        change_percent=parse_decimal(data.get("10. change percent")),
        high=parse_decimal(data.get("03. high")),
        low=parse_decimal(data.get("04. low")),
        volume=parse_volume(data.get("06. volume")),
    )


def parse_symbol_search(payload: Any, query: str) -> List[SearchResult]:
    """Map SYMBOL_SEARCH ``bestMatches`` onto SearchResult objects."""
    if not isinstance(payload, dict):
        return []

    matches = payload.get("bestMatches")
    if not isinstance(matches, list):
        return []

    results = []
    for item in matches[:20]:
        # Keys: "1. symbol", "2. name", "3. type", "4. region",
        # "5. marketOpen", "6. marketClose", "7. timezone",
        # "8. currency", "9. matchScore"
        if not isinstance(item, dict) or not item.get("1. symbol"):
            continue
        av_type = (item.get("3. type") or "").lower()
        results.append(
            SearchResult(
                symbol=item["1. symbol"],
                name=item.get("2. name") or query,
                type=_SEARCH_TYPE_MAP.get(av_type, "stock"),
                region=item.get("4. region"),
                currency=item.get("8. currency"),
            )
        )
    return results


class AlphaVantageProvider(MarketDataProvider):
    """Alpha Vantage implementation: one call per symbol, cached."""

    provider_key = "alpha_vantage"

    def __init__(
        self,
        cache: PriceCache,
        http_client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        quote_ttl: Optional[int] = None,
        search_ttl: Optional[int] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        super().__init__(cache, http_client, timeout)
        self._api_key = api_key if api_key is not None else settings.ALPHA_VANTAGE_API_KEY
        self._base_url = base_url or settings.ALPHA_VANTAGE_BASE_URL
        self._quote_ttl = quote_ttl if quote_ttl is not None else settings.STOCK_QUOTE_CACHE_TTL
        self._search_ttl = search_ttl if search_ttl is not None else settings.SEARCH_CACHE_TTL

        if not self._api_key:
            logger.warning(
                "ALPHA_VANTAGE_API_KEY is not configured; stock quotes will be unavailable. "
                "Get a free key at https://www.alphavantage.co/support/#api-key"
            )

    @staticmethod
    def quote_cache_key(symbol: str) -> str:
        return f"stock_price_{symbol.upper()}"

    @staticmethod
    def search_cache_key(keywords: str) -> str:
        return f"stock_search_{keywords.strip().lower()}"

    async def get_price(self, symbol: str) -> Optional[Quote]:
        """Get current quote from the Global Quote endpoint, serving from cache when fresh."""
        symbol = symbol.strip().upper()
        cache_key = self.quote_cache_key(symbol)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            payload = await self._get_json(
                self._base_url,
                {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self._api_key or ""},
                operation="get_price",
                symbol=symbol,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Alpha Vantage: failed to fetch price for %s: %s", symbol, e)
            return None

        if isinstance(payload, dict) and any(key in payload for key in _PROVIDER_MESSAGE_KEYS):
            logger.warning(
                "Alpha Vantage: provider message for %s: %s",
                symbol,
                next(payload[key] for key in _PROVIDER_MESSAGE_KEYS if key in payload),
            )
            return None

        quote = parse_global_quote(payload, symbol)
        if quote is None:
            logger.warning("Alpha Vantage: no data found for symbol %s", symbol)
            return None

        self._cache.set(cache_key, quote, self._quote_ttl)
        return quote

    async def search(self, query: str) -> List[SearchResult]:
        """Search for symbols using Alpha Vantage symbol search."""
        keywords = query.strip()
        if not keywords:
            return []

        cache_key = self.search_cache_key(keywords)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            payload = await self._get_json(
                self._base_url,
                {"function": "SYMBOL_SEARCH", "keywords": keywords, "apikey": self._api_key or ""},
                operation="search",
                query=keywords,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Alpha Vantage symbol search failed for %s: %s", keywords, e)
            return []

        if isinstance(payload, dict) and any(key in payload for key in _PROVIDER_MESSAGE_KEYS):
            logger.warning("Alpha Vantage: provider message during search for %s", keywords)
            return []

        results = parse_symbol_search(payload, keywords)
        self._cache.set(cache_key, results, self._search_ttl)
        return results

    def get_rate_limits(self) -> Dict[str, int]:
        return {"calls_per_minute": 5, "calls_per_day": 25}

    def get_provider_name(self) -> str:
        return "Alpha Vantage"
