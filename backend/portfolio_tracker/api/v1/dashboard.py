"""Dashboard API endpoints."""

import logging

from fastapi import APIRouter, Depends

from portfolio_tracker.dependencies import get_dashboard_service
from portfolio_tracker.schemas.portfolio import DashboardRequest, DashboardResponse
from portfolio_tracker.services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stats", response_model=DashboardResponse)
async def get_dashboard_stats(
    request: DashboardRequest,
    dashboard_service: DashboardService = Depends(get_dashboard_service),
):
    """Value every portfolio and return account-wide totals alongside them."""
    response = await dashboard_service.get_dashboard(request.portfolios)
    logger.info(
        "dashboard_computed",
        extra={
            "portfolio_count": response.stats.total_portfolios,
            "investment_count": response.stats.total_investments,
        },
    )
    return response
