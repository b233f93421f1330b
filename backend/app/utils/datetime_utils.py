"""
Date and time utilities.

Provides timezone-aware datetime helpers and parsers for the timestamp
formats returned by market-data sources.
"""
from datetime import datetime, timezone, date, time
from typing import Any, Optional


def utcnow() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Note:
        Always use this function instead of datetime.now() to ensure
        timezone-aware timestamps across the application.
    """
    return datetime.now(timezone.utc)


def parse_ISO_date(v) -> date:
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        try:
            return date.fromisoformat(v)
        except ValueError as e:
            raise ValueError(f"Input must be an ISO date string (YYYY-MM-DD). Error: {e}")
    raise TypeError(f"Input must be a str, date or datetime, got {type(v)}")


def from_unix_timestamp(value: Any) -> Optional[datetime]:
    """
    Convert unix seconds (CoinGecko last_updated_at) to an aware UTC datetime.

    Returns None for missing or unparseable values.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def parse_trading_day(value: Any) -> Optional[datetime]:
    """
    Parse an Alpha Vantage 'latest trading day' (YYYY-MM-DD) to midnight UTC.

    Returns None for missing or malformed values.
    """
    if not value:
        return None
    try:
        day = parse_ISO_date(value)
    except (TypeError, ValueError):
        return None
    return datetime.combine(day, time.min, tzinfo=timezone.utc)
