"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Dict, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Portfolio Tracker"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Market Data Providers
    ALPHA_VANTAGE_API_KEY: Optional[str] = None  # Free: 25 calls/day, 5/min
    ALPHA_VANTAGE_BASE_URL: str = "https://www.alphavantage.co/query"
    COINGECKO_API_KEY: Optional[str] = None  # Optional demo key, sent as x-cg-demo-api-key
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    # Extra symbol -> CoinGecko id entries, e.g. {"AVAX": "avalanche-2"}
    COINGECKO_SYMBOL_OVERRIDES: Dict[str, str] = {}
    MARKET_DATA_TIMEOUT_SECONDS: float = 10.0

    # Quote caching (seconds)
    STOCK_QUOTE_CACHE_TTL: int = 300  # Alpha Vantage allows 5 calls/minute
    CRYPTO_QUOTE_CACHE_TTL: int = 60
    SEARCH_CACHE_TTL: int = 600

    # Request limits
    MAX_HOLDINGS_PER_REQUEST: int = 500
    MAX_PORTFOLIOS_PER_REQUEST: int = 50

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Monitoring
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # 'text' or 'json' (json for production)
    ENVIRONMENT: str = "development"  # development, staging, production

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("COINGECKO_SYMBOL_OVERRIDES")
    @classmethod
    def normalize_symbol_overrides(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Uppercase symbols and lowercase coin ids so lookups stay consistent."""
        return {symbol.strip().upper(): coin_id.strip().lower() for symbol, coin_id in v.items()}

    @field_validator("MARKET_DATA_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("MARKET_DATA_TIMEOUT_SECONDS must be positive")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
