"""Portfolio valuation and dashboard schemas."""

from typing import List, Optional

from pydantic import Field, field_validator

from portfolio_tracker.config import settings
from portfolio_tracker.schemas.common import CamelModel, Money
from portfolio_tracker.schemas.holding import EnrichedHolding, Holding


class PortfolioValuation(CamelModel):
    """Per-holding and aggregate valuation of one portfolio."""

    investments: List[EnrichedHolding] = Field(default_factory=list)
    total_value: Money
    total_cost: Money
    total_profit: Money
    total_profit_percent: Money


class PortfolioAnalytics(PortfolioValuation):
    """Valuation tagged with the portfolio it belongs to."""

    id: Optional[str] = None
    name: Optional[str] = None


class PortfolioInput(CamelModel):
    """A portfolio and its holdings, as loaded by the caller."""

    id: Optional[str] = None
    name: Optional[str] = Field(default=None, max_length=50)
    investments: List[Holding] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if v is None:
            return None
        return str(v)

    @field_validator("investments")
    @classmethod
    def limit_investments(cls, v: List[Holding]) -> List[Holding]:
        if len(v) > settings.MAX_HOLDINGS_PER_REQUEST:
            raise ValueError(
                f"Too many investments. Maximum is {settings.MAX_HOLDINGS_PER_REQUEST}."
            )
        return v


class DashboardRequest(CamelModel):
    portfolios: List[PortfolioInput] = Field(default_factory=list)

    @field_validator("portfolios")
    @classmethod
    def limit_portfolios(cls, v: List[PortfolioInput]) -> List[PortfolioInput]:
        if len(v) > settings.MAX_PORTFOLIOS_PER_REQUEST:
            raise ValueError(
                f"Too many portfolios. Maximum is {settings.MAX_PORTFOLIOS_PER_REQUEST}."
            )
        return v


class DashboardStats(CamelModel):
    """Account-wide totals across all portfolios."""

    total_portfolios: int
    total_investments: int
    total_value: Money
    total_cost: Money
    total_profit: Money
    total_profit_percent: Money


class DashboardResponse(CamelModel):
    stats: DashboardStats
    portfolios: List[PortfolioAnalytics] = Field(default_factory=list)
