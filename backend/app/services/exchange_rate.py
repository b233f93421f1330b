"""
USD -> local currency exchange rate with a TTL cache.

- ExchangeRateSource: fetches the latest USD-based rates table over HTTP
- ExchangeRateCache: serves the cached rate while it is younger than the TTL,
  refreshes it on expiry and falls back to the last known rate when the
  refresh fails

The cache is owned by the application-wide PricingContext; there is no
module-level state.
"""
import asyncio
import time
from decimal import Decimal
from typing import Callable, Optional

import httpx
from cachetools import TTLCache

from backend.app.logging_config import get_logger
from backend.app.schemas.holdings import ExchangeRateSnapshot
from backend.app.services.errors import ExternalServiceError
from backend.app.utils.datetime_utils import utcnow
from backend.app.utils.decimal_utils import to_decimal

logger = get_logger(__name__)

_RATE_KEY = "USD"


class ExchangeRateSource:
    """
    Latest-rates endpoint with USD as base currency.

    Expected response: {"base": "USD", "rates": {"INR": 83.1, "EUR": 0.92, ...}}
    """

    def __init__(
        self,
        url: str,
        currency: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ):
        self.url = url
        self.currency = currency.upper()
        self.timeout = timeout
        self._transport = transport

    async def fetch_rate(self) -> Decimal:
        """
        Fetch the current USD -> currency rate.

        Raises:
            ExternalServiceError: network/HTTP failure, malformed body, or the
                currency missing from the rates table
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"Exchange rate source returned HTTP {e.response.status_code}",
                details={"url": self.url, "status_code": e.response.status_code},
                ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                f"Exchange rate request failed: {e}",
                details={"url": self.url, "error": type(e).__name__},
                ) from e
        except ValueError as e:
            raise ExternalServiceError(
                "Exchange rate source returned invalid JSON",
                details={"url": self.url},
                ) from e

        rates = data.get("rates") if isinstance(data, dict) else None
        rate = to_decimal(rates.get(self.currency)) if isinstance(rates, dict) else None
        if rate is None or rate <= 0:
            raise ExternalServiceError(
                f"No USD to {self.currency} rate in exchange rate response",
                details={"url": self.url, "currency": self.currency},
                )
        return rate


class ExchangeRateCache:
    """
    Single-slot cache of the USD -> local currency rate.

    get_rate():
    - rate younger than ttl_seconds: returned without any external call
    - otherwise: fetched from the source and stored
    - fetch failure: warning logged, last known rate returned (None if the
      rate was never fetched)

    The check-fetch-store sequence is serialized by an asyncio.Lock: callers
    arriving while a refresh is in flight wait for it and then read the new
    value instead of issuing a second request.
    """

    def __init__(
        self,
        source: ExchangeRateSource,
        ttl_seconds: float = 3600,
        timer: Callable[[], float] = time.monotonic,
        ):
        self.source = source
        self.ttl_seconds = ttl_seconds
        self._fresh: TTLCache = TTLCache(maxsize=1, ttl=ttl_seconds, timer=timer)
        self._snapshot: Optional[ExchangeRateSnapshot] = None
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> Optional[ExchangeRateSnapshot]:
        """Last successfully fetched rate, even if expired."""
        return self._snapshot

    async def get_rate(self) -> Optional[Decimal]:
        rate = self._fresh.get(_RATE_KEY)
        if rate is not None:
            return rate

        async with self._lock:
            # Another coroutine may have refreshed the slot while we waited
            rate = self._fresh.get(_RATE_KEY)
            if rate is not None:
                return rate

            try:
                rate = await self.source.fetch_rate()
            except ExternalServiceError as e:
                fallback = self._snapshot.rate if self._snapshot else None
                logger.warning(
                    "Exchange rate refresh failed, using last known rate",
                    currency=self.source.currency,
                    error=e.message,
                    fallback_rate=str(fallback) if fallback is not None else None,
                    )
                return fallback

            self._fresh[_RATE_KEY] = rate
            self._snapshot = ExchangeRateSnapshot(rate=rate, fetched_at=utcnow())
            logger.info("Exchange rate refreshed", currency=self.source.currency, rate=str(rate))
            return rate
