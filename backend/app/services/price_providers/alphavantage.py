"""
Alpha Vantage stock price provider.

Uses the GLOBAL_QUOTE function, keyed by ticker symbol (upper-case).
Requires ALPHA_VANTAGE_API_KEY.

API Documentation: https://www.alphavantage.co/documentation/#latestprice
"""
from typing import Optional

import httpx

from backend.app.config import Settings
from backend.app.db.models import AssetClass
from backend.app.logging_config import get_logger
from backend.app.schemas.holdings import PriceQuote
from backend.app.services.errors import ConfigurationError, ExternalServiceError, PriceUnavailableError
from backend.app.services.price_resolver import PriceSourceProvider
from backend.app.services.provider_registry import register_provider, PriceProviderRegistry
from backend.app.utils.datetime_utils import parse_trading_day
from backend.app.utils.decimal_utils import to_decimal

logger = get_logger(__name__)


@register_provider(PriceProviderRegistry)
class AlphaVantageProvider(PriceSourceProvider):
    """
    Latest quote for a ticker.

    Response shapes:
        {"Global Quote": {"05. price": "189.8400", "09. change": "1.2300",
                          "10. change percent": "0.6522%", "07. latest trading day": "2026-10-16", ...}}
        {"Error Message": "Invalid API call. ..."}            -> PriceUnavailableError
        {"Note": "...call frequency..."} / {"Information": ...} -> ExternalServiceError (rate limit)
        {"Global Quote": {}}                                 -> quote without price
    """

    asset_class = AssetClass.STOCK
    provider_code = "alphavantage"
    provider_name = "Alpha Vantage"

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://www.alphavantage.co/query",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "AlphaVantageProvider":
        return cls(
            api_key=settings.ALPHA_VANTAGE_API_KEY,
            base_url=settings.ALPHA_VANTAGE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
            )

    async def get_current_price(self, identifier: str) -> PriceQuote:
        if not self.api_key:
            raise ConfigurationError(
                "Alpha Vantage API key not configured",
                details={"setting": "ALPHA_VANTAGE_API_KEY"},
                )

        params = {
            "function": "GLOBAL_QUOTE",
            "symbol": identifier,
            "apikey": self.api_key,
            }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"Alpha Vantage HTTP error {e.response.status_code}",
                details={
                    "symbol": identifier,
                    "status_code": e.response.status_code,
                    "body": e.response.text[:500],
                    },
                ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                f"Alpha Vantage request failed: {e}",
                details={"symbol": identifier, "error": type(e).__name__},
                ) from e
        except ValueError as e:
            raise ExternalServiceError(
                "Alpha Vantage returned invalid JSON",
                details={"symbol": identifier},
                ) from e

        if not isinstance(data, dict):
            raise ExternalServiceError(
                "Unexpected Alpha Vantage response format",
                details={"symbol": identifier, "body": str(data)[:500]},
                )

        if data.get("Error Message"):
            raise PriceUnavailableError(
                str(data["Error Message"]),
                details={"symbol": identifier, "source": self.provider_code},
                )

        notice = data.get("Note") or data.get("Information")
        if notice:
            raise ExternalServiceError(
                f"Alpha Vantage rate limit: {notice}",
                details={"symbol": identifier, "source": self.provider_code},
                )

        quote = data.get("Global Quote") or {}
        if not isinstance(quote, dict) or not quote:
            logger.info("Empty Alpha Vantage quote", symbol=identifier)
            return PriceQuote(source=self.provider_code)

        return PriceQuote(
            price=to_decimal(quote.get("05. price")),
            change_24h=to_decimal(quote.get("09. change")),
            change_percent=to_decimal(quote.get("10. change percent")),
            last_updated=parse_trading_day(quote.get("07. latest trading day")),
            source=self.provider_code,
            )
