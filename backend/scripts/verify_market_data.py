"""Fetch a few crypto quotes twice against CoinGecko and report the cache speed-up."""

import asyncio
import sys
import time
from pathlib import Path

# Add parent directory to path
sys.path.append(str(Path(__file__).parent.parent))

import httpx

from portfolio_tracker.config import settings
from portfolio_tracker.core.cache import PriceCache
from portfolio_tracker.services.market_data import CoinGeckoProvider

SYMBOLS = ["BTC", "ETH", "SOL", "DOGE"]


async def verify_market_data():
    async with httpx.AsyncClient(timeout=settings.MARKET_DATA_TIMEOUT_SECONDS) as client:
        provider = CoinGeckoProvider(
            PriceCache(),
            http_client=client,
            symbol_overrides=settings.COINGECKO_SYMBOL_OVERRIDES,
        )

        print(f"Fetching prices for: {', '.join(SYMBOLS)}")
        start = time.perf_counter()
        quotes = await provider.get_prices(SYMBOLS)
        first_ms = (time.perf_counter() - start) * 1000
        print(f"Fetch completed in {first_ms:.0f}ms\n")

        for symbol in SYMBOLS:
            quote = quotes.get(symbol)
            if quote is None:
                print(f"❌ {symbol}: Failed to fetch")
                continue
            change = f"{quote.change_percent:.2f}%" if quote.change_percent is not None else "n/a"
            print(f"✅ {symbol}: ${quote.price} (Change: {change})")

        print("\nFetching again (should be served from cache)...")
        start = time.perf_counter()
        await provider.get_prices(SYMBOLS)
        cached_ms = (time.perf_counter() - start) * 1000
        print(f"Cache fetch completed in {cached_ms:.2f}ms")


if __name__ == "__main__":
    asyncio.run(verify_market_data())
