"""Market data response schemas."""

from typing import Dict, List

from portfolio_tracker.schemas.common import CamelModel
from portfolio_tracker.services.market_data.base_provider import SearchResult


class SearchResponse(CamelModel):
    """Search results grouped by asset type (``stocks``, ``crypto``); absent keys were not searched."""

    results: Dict[str, List[SearchResult]]


class ProviderInfo(CamelModel):
    """Provider information."""

    asset_type: str
    name: str
    supports_batch: bool
    rate_limits: Dict[str, int]
