"""
Market data service - live prices for valuations.

Providers:
- Alpha Vantage (stocks, one call per symbol, FREE tier: 5 calls/min)
- CoinGecko (crypto, batched, no key required)
"""

from .alpha_vantage_provider import AlphaVantageProvider
from .base_provider import MarketDataProvider, Quote, SearchResult
from .coingecko_provider import COIN_IDS, CoinGeckoProvider
from .security import SymbolValidationError, validate_symbol

__all__ = [
    "AlphaVantageProvider",
    "COIN_IDS",
    "CoinGeckoProvider",
    "MarketDataProvider",
    "Quote",
    "SearchResult",
    "SymbolValidationError",
    "validate_symbol",
]
