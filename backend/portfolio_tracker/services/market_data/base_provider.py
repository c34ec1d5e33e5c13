"""
Base provider interface for market data.

Both the stock and the crypto provider normalise their upstream payloads
into the same Quote shape, share the process-wide PriceCache and use the
same HTTP plumbing, so the valuation engine never sees provider specifics.
"""

import logging
from abc import ABC, abstractmethod
from time import time
from typing import Any, Dict, List, Mapping, Optional

import httpx

from portfolio_tracker.core.cache import PriceCache
from portfolio_tracker.schemas.common import CamelModel, Money

logger = logging.getLogger(__name__)

# Timeout for all external API calls (seconds)
REQUEST_TIMEOUT = 10.0


class Quote(CamelModel):
    """Standardized quote data across all providers."""

    symbol: str
    price: Money
    name: Optional[str] = None
    change: Optional[Money] = None  # Session / 24h price change
    change_percent: Optional[Money] = None  # Session / 24h percentage change
    high: Optional[Money] = None
    low: Optional[Money] = None
    volume: Optional[int] = None
    market_cap: Optional[Money] = None  # Crypto only


class SearchResult(CamelModel):
    """Symbol search result."""

    symbol: str
    name: str
    type: str  # stock, etf, mutual_fund, crypto, ...
    region: Optional[str] = None
    currency: Optional[str] = None
    provider_id: Optional[str] = None  # e.g. CoinGecko coin id
    market_cap_rank: Optional[int] = None


class MarketDataProvider(ABC):
    """
    Abstract base class for market data providers.

    Implementations: AlphaVantageProvider (stocks), CoinGeckoProvider (crypto)
    """

    provider_key: str = ""

    def __init__(
        self,
        cache: PriceCache,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        """
        Args:
            cache: Shared PriceCache instance
            http_client: Shared client; when None a short-lived client is opened per call
            timeout: Per-request timeout in seconds
        """
        self._cache = cache
        self._client = http_client
        self._timeout = timeout

    @abstractmethod
    async def get_price(self, symbol: str) -> Optional[Quote]:
        """
        Get the current quote for one symbol.

        Returns:
            Quote, or None when the provider has no data or is unavailable.
            Never raises for upstream problems.
        """

    @abstractmethod
    async def search(self, query: str) -> List[SearchResult]:
        """
        Search symbols by name or ticker.

        Returns:
            Matches, or an empty list on any upstream failure.
        """

    @abstractmethod
    def get_rate_limits(self) -> Dict[str, int]:
        """Rate limit information, e.g. {'calls_per_minute': 5}."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Get human-readable provider name."""

    def supports_batch(self) -> bool:
        """Whether several symbols can be priced with one upstream call."""
        return False

    async def _get_json(
        self,
        url: str,
        params: Mapping[str, Any],
        *,
        operation: str,
        headers: Optional[Mapping[str, str]] = None,
        **log_fields: Any,
    ) -> Any:
        """
        Perform one upstream GET and decode its JSON body.

        Raises:
            httpx.HTTPError: On network errors, timeouts and non-2xx responses
            ValueError: If the body is not valid JSON
        """
        log_extra = {"provider": self.provider_key, "operation": operation, **log_fields}
        logger.info("external_api_call", extra=log_extra)
        start_time = time()

        try:
            if self._client is not None:
                response = await self._client.get(
                    url, params=params, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=params, headers=headers)

            response.raise_for_status()
            data = response.json()

        except httpx.TimeoutException:
            duration_ms = (time() - start_time) * 1000
            logger.error(
                "external_api_timeout", extra={**log_extra, "duration_ms": duration_ms}
            )
            raise
        except (httpx.HTTPError, ValueError) as e:
            duration_ms = (time() - start_time) * 1000
            logger.error(
                "external_api_failure",
                extra={**log_extra, "duration_ms": duration_ms, "error": str(e)},
            )
            raise

        duration_ms = (time() - start_time) * 1000
        logger.info("external_api_success", extra={**log_extra, "duration_ms": duration_ms})
        return data
