"""
CoinGecko crypto price provider.

Uses the public /simple/price endpoint, keyed by CoinGecko coin id
(lower-case, e.g. "bitcoin", "ethereum"). No API key is needed.

API Documentation: https://docs.coingecko.com/reference/simple-price
"""
from typing import Optional

import httpx

from backend.app.config import Settings
from backend.app.db.models import AssetClass
from backend.app.logging_config import get_logger
from backend.app.schemas.holdings import PriceQuote
from backend.app.services.errors import ExternalServiceError
from backend.app.services.price_resolver import PriceSourceProvider
from backend.app.services.provider_registry import register_provider, PriceProviderRegistry
from backend.app.utils.datetime_utils import from_unix_timestamp
from backend.app.utils.decimal_utils import to_decimal

logger = get_logger(__name__)


@register_provider(PriceProviderRegistry)
class CoinGeckoProvider(PriceSourceProvider):
    """
    Spot USD price and 24h change for a coin id.

    Response shape:
        {"bitcoin": {"usd": 50000, "usd_24h_change": 1.25, "last_updated_at": 1718000000}}

    An id CoinGecko does not know is simply absent from the response; that
    yields a quote without price.
    """

    asset_class = AssetClass.CRYPTO
    provider_code = "coingecko"
    provider_name = "CoinGecko"

    def __init__(
        self,
        base_url: str = "https://api.coingecko.com/api/v3",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "CoinGeckoProvider":
        return cls(base_url=settings.COINGECKO_URL, timeout=settings.HTTP_TIMEOUT_SECONDS, transport=transport)

    async def get_current_price(self, identifier: str) -> PriceQuote:
        url = f"{self.base_url}/simple/price"
        params = {
            "ids": identifier,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
            "include_last_updated_at": "true",
            }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"CoinGecko HTTP error {e.response.status_code}",
                details={
                    "symbol": identifier,
                    "status_code": e.response.status_code,
                    "body": e.response.text[:500],
                    },
                ) from e
        except httpx.HTTPError as e:
            # Includes timeouts (httpx.TimeoutException)
            raise ExternalServiceError(
                f"CoinGecko request failed: {e}",
                details={"symbol": identifier, "error": type(e).__name__},
                ) from e
        except ValueError as e:
            raise ExternalServiceError(
                "CoinGecko returned invalid JSON",
                details={"symbol": identifier},
                ) from e

        if not isinstance(data, dict):
            raise ExternalServiceError(
                "Unexpected CoinGecko response format",
                details={"symbol": identifier, "body": str(data)[:500]},
                )

        coin = data.get(identifier)
        if not isinstance(coin, dict):
            logger.info("Coin id not found on CoinGecko", symbol=identifier)
            return PriceQuote(source=self.provider_code)

        return PriceQuote(
            price=to_decimal(coin.get("usd")),
            change_24h=to_decimal(coin.get("usd_24h_change")),
            last_updated=from_unix_timestamp(coin.get("last_updated_at")),
            source=self.provider_code,
            )
