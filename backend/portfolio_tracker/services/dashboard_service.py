"""Dashboard service for account-wide portfolio statistics."""

import asyncio
from decimal import Decimal
from typing import List, Sequence

from portfolio_tracker.schemas.portfolio import (
    DashboardResponse,
    DashboardStats,
    PortfolioAnalytics,
    PortfolioInput,
    PortfolioValuation,
)
from portfolio_tracker.services.valuation_service import ValuationEngine, percent_of


def aggregate(valuations: Sequence[PortfolioValuation]) -> DashboardStats:
    """Roll per-portfolio valuations up into dashboard totals."""
    total_value = Decimal(0)
    total_cost = Decimal(0)
    total_profit = Decimal(0)
    total_investments = 0

    for valuation in valuations:
        total_value += valuation.total_value
        total_cost += valuation.total_cost
        total_profit += valuation.total_profit
        total_investments += len(valuation.investments)

    return DashboardStats(
        total_portfolios=len(valuations),
        total_investments=total_investments,
        total_value=total_value,
        total_cost=total_cost,
        total_profit=total_profit,
        total_profit_percent=percent_of(total_profit, total_cost),
    )


class DashboardService:
    """Service for calculating dashboard metrics."""

    def __init__(self, engine: ValuationEngine):
        self.engine = engine

    async def analyze_portfolio(self, portfolio: PortfolioInput) -> PortfolioAnalytics:
        """Value one portfolio and tag the result with its id and name."""
        valuation = await self.engine.compute_portfolio_value(portfolio.investments)
        return PortfolioAnalytics(
            id=portfolio.id,
            name=portfolio.name,
            investments=valuation.investments,
            total_value=valuation.total_value,
            total_cost=valuation.total_cost,
            total_profit=valuation.total_profit,
            total_profit_percent=valuation.total_profit_percent,
        )

    async def get_dashboard(self, portfolios: Sequence[PortfolioInput]) -> DashboardResponse:
        """
        Value every portfolio concurrently and aggregate the results.

        Portfolios that share symbols benefit from the quote cache, but two
        portfolios missing the same symbol at the same moment may both fetch it.
        """
        analytics: List[PortfolioAnalytics] = list(
            await asyncio.gather(*(self.analyze_portfolio(p) for p in portfolios))
        )
        return DashboardResponse(stats=aggregate(analytics), portfolios=analytics)
