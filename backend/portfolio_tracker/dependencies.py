"""FastAPI dependencies wiring the shared providers into request handlers."""

from fastapi import Depends, Request

from portfolio_tracker.services.dashboard_service import DashboardService
from portfolio_tracker.services.market_data import CoinGeckoProvider, MarketDataProvider
from portfolio_tracker.services.valuation_service import ValuationEngine


def get_stock_provider(request: Request) -> MarketDataProvider:
    """The stock provider built at startup; it shares the process-wide PriceCache."""
    return request.app.state.stock_provider


def get_crypto_provider(request: Request) -> CoinGeckoProvider:
    return request.app.state.crypto_provider


def get_valuation_engine(
    stock_provider: MarketDataProvider = Depends(get_stock_provider),
    crypto_provider: CoinGeckoProvider = Depends(get_crypto_provider),
) -> ValuationEngine:
    return ValuationEngine(stock_provider, crypto_provider)


def get_dashboard_service(
    engine: ValuationEngine = Depends(get_valuation_engine),
) -> DashboardService:
    return DashboardService(engine)
