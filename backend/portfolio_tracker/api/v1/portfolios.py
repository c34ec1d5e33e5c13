"""Portfolio analytics API endpoints."""

from fastapi import APIRouter, Depends

from portfolio_tracker.dependencies import get_dashboard_service
from portfolio_tracker.schemas.portfolio import PortfolioAnalytics, PortfolioInput
from portfolio_tracker.services.dashboard_service import DashboardService

router = APIRouter()


@router.post("/analytics", response_model=PortfolioAnalytics)
async def get_portfolio_analytics(
    portfolio: PortfolioInput,
    dashboard_service: DashboardService = Depends(get_dashboard_service),
):
    """
    Value a single portfolio against current market prices.

    Holdings whose price cannot be fetched are valued at 0 and still returned.
    """
    return await dashboard_service.analyze_portfolio(portfolio)
