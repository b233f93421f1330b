"""
Application configuration module.
Loads environment variables and provides application-wide settings.
"""
import os
from pathlib import Path

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Get project root (two levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Global flag to indicate test mode (set via --test flag or IPM_TEST_MODE env var)
_test_mode = os.environ.get("IPM_TEST_MODE", "").lower() in ("1", "true", "yes")


def set_test_mode(enabled: bool = True):
    """
    Enable/disable test mode globally.
    When enabled, DATABASE_URL will automatically use TEST_DATABASE_URL.

    Args:
        enabled: True to enable test mode, False to disable
    """
    global _test_mode
    _test_mode = enabled
    os.environ["IPM_TEST_MODE"] = "1" if enabled else "0"


def is_test_mode() -> bool:
    """Check if test mode is enabled."""
    return _test_mode


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env file.
    (Note: Environment variables take precedence over .env file)
    """
    # Database
    DATABASE_URL: str = "sqlite:///./backend/data/sqlite/app.db"
    TEST_DATABASE_URL: str = "sqlite:///./backend/data/sqlite/test_app.db"

    # API
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "IPM"
    VERSION: str = "0.1.0"

    # Server
    PORT: int = 5050

    # Logging
    LOG_LEVEL: str = "INFO"

    # Valuation: prices are quoted in USD and converted to this currency
    LOCAL_CURRENCY: str = "INR"

    # Exchange rate source (USD base)
    EXCHANGE_RATE_URL: str = "https://api.exchangerate-api.com/v4/latest/USD"
    EXCHANGE_RATE_TTL_SECONDS: int = 3600

    # Market data sources
    COINGECKO_URL: str = "https://api.coingecko.com/api/v3"
    ALPHA_VANTAGE_URL: str = "https://www.alphavantage.co/query"
    ALPHA_VANTAGE_API_KEY: str = ""

    # Upper bound for every outbound HTTP call
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Retry policy per asset class (linear backoff: base * attempt)
    CRYPTO_MAX_ATTEMPTS: int = 3
    CRYPTO_BACKOFF_SECONDS: float = 1.0
    STOCK_MAX_ATTEMPTS: int = 1  # Alpha Vantage free tier: 5 calls/minute
    STOCK_BACKOFF_SECONDS: float = 0.0

    # CORS (for frontend development)
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    model_config = ConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        case_sensitive=True,
        env_file_encoding='utf-8',
        extra='ignore',
        )


def get_settings() -> Settings:
    """
    Get settings instance.

    In test mode, DATABASE_URL is automatically overridden with TEST_DATABASE_URL.

    Returns:
        Settings: Application settings
    """
    settings = Settings()

    # Override DATABASE_URL if in test mode
    if is_test_mode():
        settings.DATABASE_URL = settings.TEST_DATABASE_URL

    return settings
