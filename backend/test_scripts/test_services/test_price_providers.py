"""
Tests for the price provider plugins (CoinGecko, Alpha Vantage) and their registry.

Upstream HTTP is replaced with httpx.MockTransport; no network access.

Reference: backend/app/services/price_providers/
"""
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from backend.test_scripts.test_db_config import setup_test_database
setup_test_database()

from backend.app.db.models import AssetClass
from backend.app.services.errors import ConfigurationError, ExternalServiceError, PriceUnavailableError
from backend.app.services.price_providers.alphavantage import AlphaVantageProvider
from backend.app.services.price_providers.coingecko import CoinGeckoProvider
from backend.app.services.provider_registry import PriceProviderRegistry


class RecordingHandler:
    """MockTransport handler returning a fixed response and keeping the requests."""

    def __init__(self, response: httpx.Response = None, error: Exception = None):
        self.response = response
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


def coingecko(handler) -> CoinGeckoProvider:
    return CoinGeckoProvider(transport=httpx.MockTransport(handler))


def alphavantage(handler, api_key: str = "demo") -> AlphaVantageProvider:
    return AlphaVantageProvider(api_key=api_key, transport=httpx.MockTransport(handler))


# ============================================================================
# REGISTRY
# ============================================================================

def test_registry_discovers_providers():
    providers = PriceProviderRegistry.all_providers()

    assert providers[AssetClass.CRYPTO] is CoinGeckoProvider
    assert providers[AssetClass.STOCK] is AlphaVantageProvider
    assert AssetClass.OTHER not in providers


def test_registry_lists_metadata():
    listed = {p["key"]: p for p in PriceProviderRegistry.list_providers()}

    assert listed["Crypto"]["code"] == "coingecko"
    assert listed["Stock"]["name"] == "Alpha Vantage"


# ============================================================================
# COINGECKO
# ============================================================================

class TestCoinGecko:

    @pytest.mark.asyncio
    async def test_quote(self):
        handler = RecordingHandler(httpx.Response(200, json={
            "bitcoin": {"usd": 50000.5, "usd_24h_change": -1.25, "last_updated_at": 1718000000},
            }))

        quote = await coingecko(handler).get_current_price("bitcoin")

        assert quote.price == Decimal("50000.5")
        assert quote.change_24h == Decimal("-1.25")
        assert quote.last_updated == datetime.fromtimestamp(1718000000, tz=timezone.utc)
        assert quote.source == "coingecko"

        request = handler.requests[0]
        assert request.url.path == "/api/v3/simple/price"
        assert request.url.params["ids"] == "bitcoin"
        assert request.url.params["vs_currencies"] == "usd"
        assert request.url.params["include_24hr_change"] == "true"

    @pytest.mark.asyncio
    async def test_unknown_coin_gives_empty_quote(self):
        quote = await coingecko(RecordingHandler(httpx.Response(200, json={}))).get_current_price("notacoin")
        assert quote.price is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 500, 503])
    async def test_http_error(self, status):
        handler = RecordingHandler(httpx.Response(status, text="busy"))

        with pytest.raises(ExternalServiceError) as exc_info:
            await coingecko(handler).get_current_price("bitcoin")

        assert exc_info.value.details["status_code"] == status
        assert exc_info.value.details["body"] == "busy"

    @pytest.mark.asyncio
    async def test_timeout(self):
        handler = RecordingHandler(error=httpx.ReadTimeout("timed out"))

        with pytest.raises(ExternalServiceError) as exc_info:
            await coingecko(handler).get_current_price("bitcoin")

        assert exc_info.value.details["error"] == "ReadTimeout"

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        with pytest.raises(ExternalServiceError, match="Unexpected CoinGecko response"):
            await coingecko(RecordingHandler(httpx.Response(200, json=[1, 2]))).get_current_price("bitcoin")


# ============================================================================
# ALPHA VANTAGE
# ============================================================================

class TestAlphaVantage:

    @pytest.mark.asyncio
    async def test_quote(self):
        handler = RecordingHandler(httpx.Response(200, json={"Global Quote": {
            "01. symbol": "AAPL",
            "05. price": "189.8400",
            "07. latest trading day": "2026-10-16",
            "09. change": "1.2300",
            "10. change percent": "0.6522%",
            }}))

        quote = await alphavantage(handler).get_current_price("AAPL")

        assert quote.price == Decimal("189.8400")
        assert quote.change_24h == Decimal("1.2300")
        assert quote.change_percent == Decimal("0.6522")
        assert quote.last_updated == datetime(2026, 10, 16, tzinfo=timezone.utc)

        params = handler.requests[0].url.params
        assert params["function"] == "GLOBAL_QUOTE"
        assert params["symbol"] == "AAPL"
        assert params["apikey"] == "demo"

    @pytest.mark.asyncio
    async def test_missing_api_key_makes_no_request(self):
        handler = RecordingHandler(httpx.Response(200, json={}))

        with pytest.raises(ConfigurationError) as exc_info:
            await alphavantage(handler, api_key="").get_current_price("AAPL")

        assert handler.requests == []
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_invalid_symbol(self):
        handler = RecordingHandler(httpx.Response(200, json={"Error Message": "Invalid API call."}))

        with pytest.raises(PriceUnavailableError, match="Invalid API call"):
            await alphavantage(handler).get_current_price("NOPE")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["Note", "Information"])
    async def test_rate_limit_notice(self, key):
        handler = RecordingHandler(httpx.Response(200, json={key: "API call frequency is 5 calls per minute"}))

        with pytest.raises(ExternalServiceError, match="rate limit"):
            await alphavantage(handler).get_current_price("AAPL")

    @pytest.mark.asyncio
    async def test_empty_global_quote(self):
        handler = RecordingHandler(httpx.Response(200, json={"Global Quote": {}}))

        quote = await alphavantage(handler).get_current_price("ZZZZ")

        assert quote.price is None
        assert quote.source == "alphavantage"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        handler = RecordingHandler(httpx.Response(200, text="not json"))

        with pytest.raises(ExternalServiceError, match="invalid JSON"):
            await alphavantage(handler).get_current_price("AAPL")
