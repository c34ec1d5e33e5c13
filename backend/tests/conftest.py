"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from fastapi.testclient import TestClient

from portfolio_tracker.core.cache import PriceCache
from portfolio_tracker.dependencies import get_crypto_provider, get_stock_provider
from portfolio_tracker.main import app
from portfolio_tracker.services.market_data import AlphaVantageProvider, CoinGeckoProvider

ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
COINGECKO_URL = "https://api.coingecko.com/api/v3"


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class UpstreamStub:
    """
    In-process stand-in for Alpha Vantage and CoinGecko.

    Mounted behind ``httpx.MockTransport``; every request is recorded so tests
    can assert how many upstream calls a code path made.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.stock_prices: Dict[str, Any] = {}
        self.stock_matches: List[Dict[str, str]] = []
        self.stock_payload_override: Optional[Dict[str, Any]] = None
        self.failing_stocks: set = set()
        self.coin_prices: Dict[str, Dict[str, Any]] = {}
        self.coins: List[Dict[str, Any]] = []
        self.crypto_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params

        if request.url.host == "www.alphavantage.co":
            return self._alpha_vantage(params)

        if request.url.path.endswith("/simple/price"):
            if self.crypto_status != 200:
                return httpx.Response(self.crypto_status, json={"error": "unavailable"})
            ids = params["ids"].split(",")
            return httpx.Response(
                200, json={coin_id: self.coin_prices[coin_id] for coin_id in ids if coin_id in self.coin_prices}
            )

        if request.url.path.endswith("/search"):
            if self.crypto_status != 200:
                return httpx.Response(self.crypto_status)
            return httpx.Response(200, json={"coins": self.coins})

        return httpx.Response(404)

    def _alpha_vantage(self, params) -> httpx.Response:
        if self.stock_payload_override is not None:
            return httpx.Response(200, json=self.stock_payload_override)

        function = params.get("function")
        if function == "SYMBOL_SEARCH":
            return httpx.Response(200, json={"bestMatches": self.stock_matches})

        symbol = params.get("symbol")
        if symbol in self.failing_stocks:
            return httpx.Response(500, text="Internal Server Error")

        price = self.stock_prices.get(symbol)
        if price is None:
            return httpx.Response(200, json={"Global Quote": {}})

        return httpx.Response(
            200,
            json={
                "Global Quote": {
                    "01. symbol": symbol,
                    "03. high": str(price),
                    "04. low": str(price),
                    "05. price": str(price),
                    "06. volume": "1000",
                    "09. change": "0.0000",
                    "10. change percent": "0.0000%",
                }
            },
        )

    def calls_to(self, fragment: str) -> List[httpx.Request]:
        """Recorded requests whose URL path or ``function`` param matches ``fragment``."""
        return [
            r
            for r in self.requests
            if r.url.path.endswith(fragment) or r.url.params.get("function") == fragment
        ]


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def price_cache(fake_clock):
    """PriceCache driven by a fake clock."""
    return PriceCache(clock=fake_clock)


@pytest.fixture
def upstream():
    return UpstreamStub()


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def stock_provider(price_cache, http_client):
    return AlphaVantageProvider(
        price_cache,
        http_client=http_client,
        api_key="test-key",
        base_url=ALPHA_VANTAGE_URL,
        quote_ttl=300,
        search_ttl=600,
    )


@pytest.fixture
def crypto_provider(price_cache, http_client):
    return CoinGeckoProvider(
        price_cache,
        http_client=http_client,
        api_key="",
        base_url=COINGECKO_URL,
        symbol_overrides={},
        quote_ttl=60,
        search_ttl=600,
    )


@pytest.fixture
def mock_stock_provider():
    """Mock stock provider for API tests."""
    provider = Mock()
    provider.get_price = AsyncMock(return_value=None)
    provider.search = AsyncMock(return_value=[])
    provider.get_provider_name.return_value = "Alpha Vantage"
    provider.supports_batch.return_value = False
    provider.get_rate_limits.return_value = {"calls_per_minute": 5, "calls_per_day": 25}
    return provider


@pytest.fixture
def mock_crypto_provider():
    """Mock crypto provider for API tests."""
    provider = Mock()
    provider.get_price = AsyncMock(return_value=None)
    provider.get_prices = AsyncMock(return_value={})
    provider.search = AsyncMock(return_value=[])
    provider.get_provider_name.return_value = "CoinGecko"
    provider.supports_batch.return_value = True
    provider.get_rate_limits.return_value = {"calls_per_minute": 30}
    return provider


@pytest.fixture
def client(mock_stock_provider, mock_crypto_provider):
    """Test client with the market data providers replaced by mocks."""
    app.dependency_overrides[get_stock_provider] = lambda: mock_stock_provider
    app.dependency_overrides[get_crypto_provider] = lambda: mock_crypto_provider
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stub_client(stock_provider, crypto_provider):
    """Test client backed by real providers talking to the upstream stub."""
    app.dependency_overrides[get_stock_provider] = lambda: stock_provider
    app.dependency_overrides[get_crypto_provider] = lambda: crypto_provider
    yield TestClient(app)
    app.dependency_overrides.clear()
