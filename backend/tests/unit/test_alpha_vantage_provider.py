"""Tests for Alpha Vantage market data provider."""

from decimal import Decimal

import httpx
import pytest

from portfolio_tracker.core.cache import PriceCache
from portfolio_tracker.services.market_data.alpha_vantage_provider import (
    AlphaVantageProvider,
    parse_global_quote,
    parse_symbol_search,
)


class TestParseGlobalQuote:
    """Test suite for GLOBAL_QUOTE parsing."""

    def test_full_payload(self):
        """Should map every Global Quote field onto the Quote."""
        payload = {
            "Global Quote": {
                "01. symbol": "AAPL",
                "02. open": "184.50",
                "03. high": "186.00",
                "04. low": "184.00",
                "05. price": "185.50",
                "06. volume": "50000000",
                "07. latest trading day": "2023-11-15",
                "08. previous close": "183.00",
                "09. change": "2.50",
                "10. change percent": "1.3661%",
            }
        }

        quote = parse_global_quote(payload, "AAPL")

        assert quote.symbol == "AAPL"
        assert quote.price == Decimal("185.50")
        assert quote.high == Decimal("186.00")
        assert quote.low == Decimal("184.00")
        assert quote.volume == 50000000
        assert quote.change == Decimal("2.50")
        assert quote.change_percent == Decimal("1.3661")
        assert quote.market_cap is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"Global Quote": {}},
            {},
            [],
            {"Global Quote": {"01. symbol": "XYZ"}},
            {"Global Quote": {"05. price": "0.0000"}},
            {"Global Quote": {"05. price": "not-a-number"}},
        ],
    )
    def test_unusable_payload_returns_none(self, payload):
        """Should fail closed when there is no positive numeric price."""
        assert parse_global_quote(payload, "XYZ") is None


class TestParseSymbolSearch:
    def test_maps_best_matches(self):
        payload = {
            "bestMatches": [
                {
                    "1. symbol": "AAPL",
                    "2. name": "Apple Inc",
                    "3. type": "Equity",
                    "4. region": "United States",
                    "8. currency": "USD",
                },
                {"1. symbol": "SPY", "2. name": "SPDR S&P 500", "3. type": "ETF"},
                {"2. name": "no symbol"},
            ]
        }

        results = parse_symbol_search(payload, "a")

        assert [r.symbol for r in results] == ["AAPL", "SPY"]
        assert results[0].type == "stock"
        assert results[0].region == "United States"
        assert results[1].type == "etf"

    def test_missing_matches(self):
        assert parse_symbol_search({}, "a") == []


class TestAlphaVantageProvider:
    """Test suite for Alpha Vantage market data provider."""

    @pytest.mark.asyncio
    async def test_get_price_success(self, stock_provider, upstream):
        """Should fetch GLOBAL_QUOTE with the API key and return a Quote."""
        upstream.stock_prices["AAPL"] = "150.00"

        quote = await stock_provider.get_price("aapl")

        assert quote.symbol == "AAPL"
        assert quote.price == Decimal("150.00")
        request = upstream.requests[0]
        assert request.url.params["function"] == "GLOBAL_QUOTE"
        assert request.url.params["symbol"] == "AAPL"
        assert request.url.params["apikey"] == "test-key"

    @pytest.mark.asyncio
    async def test_get_price_served_from_cache(self, stock_provider, upstream, price_cache):
        """Should not call upstream again while the quote is fresh."""
        upstream.stock_prices["AAPL"] = "150.00"

        first = await stock_provider.get_price("AAPL")
        second = await stock_provider.get_price("AAPL")

        assert first == second
        assert len(upstream.requests) == 1
        assert price_cache.get("stock_price_AAPL") == first

    @pytest.mark.asyncio
    async def test_get_price_refetches_after_ttl(self, stock_provider, upstream, fake_clock):
        upstream.stock_prices["AAPL"] = "150.00"
        await stock_provider.get_price("AAPL")

        fake_clock.advance(301)
        upstream.stock_prices["AAPL"] = "155.00"
        quote = await stock_provider.get_price("AAPL")

        assert quote.price == Decimal("155.00")
        assert len(upstream.requests) == 2

    @pytest.mark.asyncio
    async def test_get_price_unknown_symbol(self, stock_provider, upstream, price_cache):
        """Should return None and cache nothing for an empty Global Quote."""
        quote = await stock_provider.get_price("ZZZZ")

        assert quote is None
        assert price_cache.size == 0

    @pytest.mark.asyncio
    async def test_get_price_http_error(self, stock_provider, upstream):
        """Should swallow non-2xx responses as no data."""
        upstream.failing_stocks.add("AAPL")

        assert await stock_provider.get_price("AAPL") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            {"Note": "Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day."},
            {"Information": "The demo API key is for demo purposes only."},
            {"Error Message": "Invalid API call."},
        ],
    )
    async def test_get_price_provider_message(self, stock_provider, upstream, price_cache, message):
        """Should treat throttling and error notes as no data."""
        upstream.stock_payload_override = message

        assert await stock_provider.get_price("AAPL") is None
        assert price_cache.size == 0

    @pytest.mark.asyncio
    async def test_get_price_timeout(self, price_cache):
        """Should return None when the request times out."""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = AlphaVantageProvider(
            price_cache,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            api_key="test-key",
        )

        assert await provider.get_price("AAPL") is None

    @pytest.mark.asyncio
    async def test_get_price_invalid_json(self, price_cache):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        provider = AlphaVantageProvider(
            price_cache,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            api_key="test-key",
        )

        assert await provider.get_price("AAPL") is None

    @pytest.mark.asyncio
    async def test_search(self, stock_provider, upstream):
        """Should search once and serve repeats from cache."""
        upstream.stock_matches = [{"1. symbol": "TSLA", "2. name": "Tesla Inc", "3. type": "Equity"}]

        first = await stock_provider.search("tesla")
        second = await stock_provider.search("  TESLA ")

        assert [r.symbol for r in first] == ["TSLA"]
        assert second == first
        assert len(upstream.calls_to("SYMBOL_SEARCH")) == 1

    @pytest.mark.asyncio
    async def test_search_blank_query(self, stock_provider, upstream):
        assert await stock_provider.search("   ") == []
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_search_provider_message(self, stock_provider, upstream, price_cache):
        upstream.stock_payload_override = {"Note": "rate limited"}

        assert await stock_provider.search("tesla") == []
        assert price_cache.get("stock_search_tesla") is None

    def test_missing_api_key_logs_warning(self, caplog, monkeypatch):
        """Should construct without a key but warn about it."""
        monkeypatch.setattr("portfolio_tracker.config.settings.ALPHA_VANTAGE_API_KEY", None)

        with caplog.at_level("WARNING"):
            AlphaVantageProvider(PriceCache())

        assert "ALPHA_VANTAGE_API_KEY" in caplog.text

    def test_provider_info(self, stock_provider):
        assert stock_provider.get_provider_name() == "Alpha Vantage"
        assert stock_provider.supports_batch() is False
        assert stock_provider.get_rate_limits() == {"calls_per_minute": 5, "calls_per_day": 25}
