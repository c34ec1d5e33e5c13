"""Holding schemas."""

import enum
from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from portfolio_tracker.schemas.common import CamelModel, Money
from portfolio_tracker.services.market_data.security import validate_symbol


class AssetType(str, enum.Enum):
    """Kinds of assets a holding can reference."""

    STOCK = "stock"
    CRYPTO = "crypto"


class TransactionType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"


class Holding(CamelModel):
    """
    One recorded buy/sell transaction for a symbol within a portfolio.

    Accepts both wire names (``assetType``, ``purchasePrice``) and attribute
    names (``asset_type``, ``purchase_price``). Zero shares or price are
    allowed here; negative, non-numeric and non-finite values are not.
    """

    id: Optional[str] = None
    symbol: str
    asset_type: AssetType
    transaction_type: TransactionType = TransactionType.BUY
    shares: Money = Field(ge=0)
    purchase_price: Money = Field(ge=0)
    purchase_date: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("symbol")
    @classmethod
    def validate_symbol_field(cls, v: str) -> str:
        return validate_symbol(v)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Persistence layers hand out UUIDs or ints; carry them as strings."""
        if v is None:
            return None
        return str(v)


class EnrichedHolding(Holding):
    """Holding with its current market valuation."""

    current_price: Money
    current_value: Money
    cost_basis: Money
    profit: Money
    profit_percent: Money
