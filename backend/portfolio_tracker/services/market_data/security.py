"""
Validation utilities for market data.

Everything read from an upstream provider passes through these helpers
before it becomes a Quote, so malformed payloads fail closed instead of
leaking NaN or negative prices into valuations.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Valid symbol pattern: uppercase alphanumeric, dots, hyphens only
VALID_SYMBOL_PATTERN = re.compile(r"^[A-Z0-9\.\-]{1,10}$")


class SymbolValidationError(ValueError):
    """Raised when symbol validation fails."""


class PriceValidationError(ValueError):
    """Raised when price validation fails."""


def validate_symbol(symbol: str) -> str:
    """
    Validate and normalise a ticker or coin symbol.

    Args:
        symbol: Raw symbol input

    Returns:
        Trimmed, uppercased symbol

    Raises:
        SymbolValidationError: If symbol is empty, too long or has odd characters
    """
    if not symbol or not symbol.strip():
        raise SymbolValidationError("Symbol is required")

    symbol = symbol.strip().upper()

    if len(symbol) > 10:
        raise SymbolValidationError(f"Symbol too long: {len(symbol)} chars (max 10)")

    if not VALID_SYMBOL_PATTERN.match(symbol):
        raise SymbolValidationError(
            f"Invalid symbol format: {symbol}. "
            f"Only letters, numbers, dots, and hyphens allowed."
        )

    return symbol


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a provider number (string, int or float) into a finite Decimal.

    Percent strings such as ``"1.3661%"`` are accepted. Returns None for
    missing, empty, non-numeric or non-finite values.
    """
    if value is None or isinstance(value, bool):
        return None

    text = str(value).strip().rstrip("%")
    if not text:
        return None

    try:
        result = Decimal(text)
    except (InvalidOperation, ValueError):
        return None

    if not result.is_finite():
        return None
    return result


def parse_price(value: Any, symbol: str = "") -> Decimal:
    """
    Parse the mandatory price field of a quote.

    Raises:
        PriceValidationError: If the price is missing, not a number or not positive
    """
    price = parse_decimal(value)
    if price is None:
        raise PriceValidationError(f"Invalid price for {symbol}: {value!r}")

    if price <= 0:
        raise PriceValidationError(f"Price must be positive for {symbol}: {price}")

    return price


def parse_volume(value: Any) -> Optional[int]:
    """Parse a traded volume; negative or unparsable volumes are dropped."""
    volume = parse_decimal(value)
    if volume is None or volume < 0:
        return None
    return int(volume)
