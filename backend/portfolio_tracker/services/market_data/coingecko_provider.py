"""
CoinGecko market data provider (crypto).

The /simple/price endpoint prices any number of coins in one call, so a
valuation costs at most one upstream request for all uncached crypto
symbols regardless of how many lots reference them.

No API key required; an optional demo key is sent when configured.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from portfolio_tracker.config import settings
from portfolio_tracker.core.cache import PriceCache

from .base_provider import REQUEST_TIMEOUT, MarketDataProvider, Quote, SearchResult
from .security import PriceValidationError, parse_decimal, parse_price, parse_volume

logger = logging.getLogger(__name__)

# Ticker -> CoinGecko coin id. Symbols not listed fall back to symbol.lower().
# Extend through the COINGECKO_SYMBOL_OVERRIDES setting.
COIN_IDS: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "USDT": "tether",
    "BNB": "binancecoin",
    "SOL": "solana",
    "XRP": "ripple",
    "ADA": "cardano",
    "DOGE": "dogecoin",
    "MATIC": "matic-network",
    "DOT": "polkadot",
}


def parse_simple_price(entry: Any, symbol: str) -> Optional[Quote]:
    """
    Build a Quote from one coin's /simple/price entry.

    Entry keys: "usd", "usd_market_cap", "usd_24h_vol", "usd_24h_change"
    (the last one is a percentage).
    """
    if not isinstance(entry, dict):
        return None

    try:
        price = parse_price(entry.get("usd"), symbol)
    except PriceValidationError as e:
        logger.warning("CoinGecko quote rejected for %s: %s", symbol, e)
        return None

    return Quote(
        symbol=symbol,
        price=price,
        change_percent=parse_decimal(entry.get("usd_24h_change")),
        volume=parse_volume(entry.get("usd_24h_vol")),
        market_cap=parse_decimal(entry.get("usd_market_cap")),
    )


def parse_coin_search(payload: Any) -> List[SearchResult]:
    """Map /search ``coins`` onto SearchResult objects."""
    if not isinstance(payload, dict):
        return []

    coins = payload.get("coins")
    if not isinstance(coins, list):
        return []

    results = []
    for coin in coins[:20]:
        if not isinstance(coin, dict) or not coin.get("symbol") or not coin.get("id"):
            continue
        rank = coin.get("market_cap_rank")
        results.append(
            SearchResult(
                symbol=str(coin["symbol"]).upper(),
                name=coin.get("name") or coin["id"],
                type="crypto",
                provider_id=coin["id"],
                market_cap_rank=rank if isinstance(rank, int) else None,
            )
        )
    return results


class CoinGeckoProvider(MarketDataProvider):
    """CoinGecko implementation: batched price lookups, cached per symbol."""

    provider_key = "coingecko"

    def __init__(
        self,
        cache: PriceCache,
        http_client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        symbol_overrides: Optional[Mapping[str, str]] = None,
        quote_ttl: Optional[int] = None,
        search_ttl: Optional[int] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        super().__init__(cache, http_client, timeout)
        self._api_key = api_key if api_key is not None else settings.COINGECKO_API_KEY
        self._base_url = (base_url or settings.COINGECKO_BASE_URL).rstrip("/")
        self._quote_ttl = quote_ttl if quote_ttl is not None else settings.CRYPTO_QUOTE_CACHE_TTL
        self._search_ttl = search_ttl if search_ttl is not None else settings.SEARCH_CACHE_TTL

        overrides = (
            symbol_overrides if symbol_overrides is not None else settings.COINGECKO_SYMBOL_OVERRIDES
        )
        self._coin_ids = {**COIN_IDS, **{k.upper(): v for k, v in overrides.items()}}

    @staticmethod
    def quote_cache_key(symbol: str) -> str:
        return f"crypto_price_{symbol.upper()}"

    @staticmethod
    def search_cache_key(query: str) -> str:
        return f"crypto_search_{query.strip().lower()}"

    def symbol_to_coin_id(self, symbol: str) -> str:
        """Resolve a ticker to its CoinGecko id, guessing the lowercase symbol if unknown."""
        symbol = symbol.upper()
        return self._coin_ids.get(symbol, symbol.lower())

    @property
    def _headers(self) -> Optional[Dict[str, str]]:
        if self._api_key:
            return {"x-cg-demo-api-key": self._api_key}
        return None

    async def get_prices(self, symbols: Iterable[str]) -> Dict[str, Optional[Quote]]:
        """
        Get quotes for many symbols with at most one upstream call.

        Returns:
            Dict keyed by every distinct uppercased input symbol. Symbols the
            provider has no data for, or that could not be fetched, map to None.
        """
        unique_symbols = list(dict.fromkeys(s.strip().upper() for s in symbols if s and s.strip()))
        result: Dict[str, Optional[Quote]] = {}
        to_fetch: List[str] = []

        for symbol in unique_symbols:
            cached = self._cache.get(self.quote_cache_key(symbol))
            if cached is not None:
                result[symbol] = cached
            else:
                to_fetch.append(symbol)

        if not to_fetch:
            return result

        coin_ids = [self.symbol_to_coin_id(symbol) for symbol in to_fetch]

        try:
            payload = await self._get_json(
                f"{self._base_url}/simple/price",
                {
                    "ids": ",".join(dict.fromkeys(coin_ids)),
                    "vs_currencies": "usd",
                    "include_24hr_change": "true",
                    "include_market_cap": "true",
                    "include_24hr_vol": "true",
                },
                operation="get_prices",
                headers=self._headers,
                symbols=",".join(to_fetch),
            )
            if not isinstance(payload, dict):
                raise ValueError(f"Unexpected response type: {type(payload).__name__}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("CoinGecko: error fetching prices for %s: %s", ", ".join(to_fetch), e)
            for symbol in to_fetch:
                result[symbol] = None
            return result

        for symbol, coin_id in zip(to_fetch, coin_ids):
            quote = parse_simple_price(payload.get(coin_id), symbol)
            if quote is None:
                logger.warning("CoinGecko: no data found for %s (id: %s)", symbol, coin_id)
                result[symbol] = None
                continue

            self._cache.set(self.quote_cache_key(symbol), quote, self._quote_ttl)
            result[symbol] = quote

        return result

    async def get_price(self, symbol: str) -> Optional[Quote]:
        """Single-symbol convenience wrapper around get_prices."""
        prices = await self.get_prices([symbol])
        return prices.get(symbol.strip().upper())

    async def search(self, query: str) -> List[SearchResult]:
        """Search coins by name or ticker."""
        query = query.strip()
        if not query:
            return []

        cache_key = self.search_cache_key(query)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            payload = await self._get_json(
                f"{self._base_url}/search",
                {"query": query},
                operation="search",
                headers=self._headers,
                query=query,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("CoinGecko search failed for %s: %s", query, e)
            return []

        results = parse_coin_search(payload)
        self._cache.set(cache_key, results, self._search_ttl)
        return results

    def supports_batch(self) -> bool:
        return True

    def get_rate_limits(self) -> Dict[str, int]:
        return {"calls_per_minute": 30}

    def get_provider_name(self) -> str:
        return "CoinGecko"
