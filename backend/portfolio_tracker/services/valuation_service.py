"""
Portfolio valuation engine.

Prices a list of holdings against live market data and computes
per-holding and portfolio-level profit/loss.

Pricing strategy
────────────────
crypto → one batched CoinGecko call for every distinct symbol
stock  → one Alpha Vantage call per distinct symbol (no batch endpoint)

Both kinds of lookup run concurrently and are joined before any totals are
computed. A symbol whose quote cannot be resolved is valued at 0 rather than
aborting the valuation, so the holding stays visible with
profit == -cost_basis.

Buy and sell rows are summed identically: a holding is a ledger entry, not a
net position.
"""

import asyncio
import logging
from decimal import Decimal
from time import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from portfolio_tracker.schemas.holding import AssetType, EnrichedHolding, Holding
from portfolio_tracker.schemas.portfolio import PortfolioValuation
from portfolio_tracker.services.market_data import CoinGeckoProvider, MarketDataProvider, Quote

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

HoldingLike = Union[Holding, Mapping[str, Any]]
PriceKey = Tuple[AssetType, str]


class InvalidInputError(ValueError):
    """Raised when caller-supplied holdings are malformed."""


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole × 100``, or exactly 0 when ``whole`` is not positive."""
    if whole > 0:
        return part / whole * HUNDRED
    return ZERO


def coerce_holdings(holdings: Iterable[HoldingLike]) -> List[Holding]:
    """
    Validate raw holding records.

    Accepts Holding instances or plain mappings (wire or attribute names).

    Raises:
        InvalidInputError: On the first malformed record; nothing is priced.
    """
    if holdings is None:
        raise InvalidInputError("Holdings are required")

    validated: List[Holding] = []
    for index, item in enumerate(holdings):
        if isinstance(item, Holding):
            validated.append(item)
            continue
        if not isinstance(item, Mapping):
            raise InvalidInputError(f"Holding {index} must be an object, got {type(item).__name__}")
        try:
            validated.append(Holding.model_validate(dict(item)))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise InvalidInputError(f"Invalid holding {index}: {problems}") from e
    return validated


def enrich_holding(holding: Holding, current_price: Decimal) -> EnrichedHolding:
    """Attach current value and profit/loss to one holding."""
    current_value = holding.shares * current_price
    cost_basis = holding.shares * holding.purchase_price
    profit = current_value - cost_basis

    return EnrichedHolding(
        **holding.model_dump(),
        current_price=current_price,
        current_value=current_value,
        cost_basis=cost_basis,
        profit=profit,
        profit_percent=percent_of(profit, cost_basis),
    )


def _quote_price(quote: Optional[Quote]) -> Decimal:
    return quote.price if quote is not None else ZERO


class ValuationEngine:
    """Computes portfolio valuations from holdings and live quotes."""

    def __init__(self, stock_provider: MarketDataProvider, crypto_provider: CoinGeckoProvider):
        self.stock_provider = stock_provider
        self.crypto_provider = crypto_provider

    async def compute_portfolio_value(self, holdings: Iterable[HoldingLike]) -> PortfolioValuation:
        """
        Value a portfolio.

        Args:
            holdings: Holding instances or mappings, in display order

        Returns:
            PortfolioValuation with enriched holdings in input order

        Raises:
            InvalidInputError: If any holding is malformed
        """
        items = coerce_holdings(holdings)
        start_time = time()

        prices = await self._resolve_prices(items)

        investments: List[EnrichedHolding] = []
        total_value = ZERO
        total_cost = ZERO
        total_profit = ZERO

        for holding in items:
            enriched = enrich_holding(holding, prices.get((holding.asset_type, holding.symbol), ZERO))
            investments.append(enriched)

            total_value += enriched.current_value
            total_cost += enriched.cost_basis
            total_profit += enriched.profit

        logger.info(
            "portfolio_valued",
            extra={
                "holding_count": len(items),
                "priced_symbols": sum(1 for price in prices.values() if price > 0),
                "duration_ms": (time() - start_time) * 1000,
            },
        )

        return PortfolioValuation(
            investments=investments,
            total_value=total_value,
            total_cost=total_cost,
            total_profit=total_profit,
            total_profit_percent=percent_of(total_profit, total_cost),
        )

    async def _resolve_prices(self, holdings: List[Holding]) -> Dict[PriceKey, Decimal]:
        """Fetch current prices for every distinct (asset type, symbol) pair."""
        stock_symbols = list(
            dict.fromkeys(h.symbol for h in holdings if h.asset_type == AssetType.STOCK)
        )
        crypto_symbols = list(
            dict.fromkeys(h.symbol for h in holdings if h.asset_type == AssetType.CRYPTO)
        )

        calls = [self.stock_provider.get_price(symbol) for symbol in stock_symbols]
        if crypto_symbols:
            calls.append(self.crypto_provider.get_prices(crypto_symbols))

        results = await asyncio.gather(*calls, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        prices: Dict[PriceKey, Decimal] = {}

        for symbol, result in zip(stock_symbols, results):
            if isinstance(result, Exception):
                logger.error("Stock price lookup failed for %s: %s", symbol, result)
                result = None
            prices[(AssetType.STOCK, symbol)] = _quote_price(result)

        if crypto_symbols:
            batch = results[-1]
            if isinstance(batch, Exception):
                logger.error("Crypto price lookup failed for %s: %s", ", ".join(crypto_symbols), batch)
                batch = {}
            for symbol in crypto_symbols:
                prices[(AssetType.CRYPTO, symbol)] = _quote_price(batch.get(symbol))

        return prices
