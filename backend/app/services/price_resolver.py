"""
Price resolution for holdings.

This module provides:
- PriceSourceProvider: abstract base class for market-data sources (plugins)
- RetryPolicy: per asset class retry configuration
- normalize_symbol(): identifier normalization per asset class
- PriceResolver: picks the source for an asset class and applies its retry policy

Providers live in services/price_providers/ and register themselves with
PriceProviderRegistry via @register_provider.

Retry policy (defaults from Settings):
- Crypto: 3 attempts, linear backoff 1s, 2s between attempts
- Stock: single attempt; the free Alpha Vantage tier allows 5 calls/minute,
  so retrying would mostly burn quota
Only ExternalServiceError (transient upstream failure) is retried.
ConfigurationError and PriceUnavailableError propagate immediately.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, ClassVar, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from backend.app.config import Settings, get_settings
from backend.app.db.models import AssetClass
from backend.app.logging_config import get_logger
from backend.app.schemas.holdings import PriceQuote
from backend.app.services.errors import ExternalServiceError, PriceUnavailableError
from backend.app.services.provider_registry import PriceProviderRegistry

logger = get_logger(__name__)


# ============================================================================
# ABSTRACT BASE CLASS
# ============================================================================


class PriceSourceProvider(ABC):
    """
    Abstract base class for market-data sources.

    PLUGIN is responsible for:
    - Fetching the current quote for one identifier from its external API
    - Mapping transport/HTTP/format failures to ExternalServiceError
    - Mapping explicit "unknown symbol" answers to PriceUnavailableError
    - Returning PriceQuote(price=None) when the answer simply has no price

    RESOLVER is responsible for:
    - Identifier normalization (case rules per asset class)
    - Retries and backoff
    - Rejecting missing/non-positive prices

    Required implementations:
    - asset_class: AssetClass priced by this provider (registry key)
    - provider_code / provider_name
    - from_settings(): build an instance from application settings
    - get_current_price()
    """

    asset_class: ClassVar[AssetClass]
    provider_code: ClassVar[str]
    provider_name: ClassVar[str]

    @classmethod
    @abstractmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ) -> "PriceSourceProvider":
        pass

    @abstractmethod
    async def get_current_price(self, identifier: str) -> PriceQuote:
        """
        Fetch the latest USD quote for a normalized identifier.

        Raises:
            ExternalServiceError: transient failure (network, timeout, 5xx, malformed body)
            PriceUnavailableError: the source explicitly rejected the identifier
            ConfigurationError: the provider is missing a credential
        """
        pass


# ============================================================================
# RETRY POLICY
# ============================================================================


class RetryPolicy(BaseModel):
    """
    How many times to try a source, and how long to wait in between.

    The wait before retry n (n = 1, 2, ...) is backoff_seconds * n.
    """
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(1, ge=1)
    backoff_seconds: float = Field(0.0, ge=0)

    @property
    def retries_enabled(self) -> bool:
        return self.max_attempts > 1

    def delay_before_retry(self, failed_attempt: int) -> float:
        return self.backoff_seconds * failed_attempt


NO_RETRY = RetryPolicy()


def default_retry_policies(settings: Settings) -> dict[AssetClass, RetryPolicy]:
    return {
        AssetClass.CRYPTO: RetryPolicy(
            max_attempts=settings.CRYPTO_MAX_ATTEMPTS,
            backoff_seconds=settings.CRYPTO_BACKOFF_SECONDS,
            ),
        AssetClass.STOCK: RetryPolicy(
            max_attempts=settings.STOCK_MAX_ATTEMPTS,
            backoff_seconds=settings.STOCK_BACKOFF_SECONDS,
            ),
        }


def build_providers(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> dict[AssetClass, PriceSourceProvider]:
    """Instantiate every registered price provider from settings."""
    return {
        asset_class: provider_class.from_settings(settings, transport=transport)
        for asset_class, provider_class in PriceProviderRegistry.all_providers().items()
        }


# ============================================================================
# RESOLVER
# ============================================================================


def normalize_symbol(asset_class: AssetClass, symbol: Optional[str], name: Optional[str]) -> str:
    """
    Identifier to query for a holding.

    Falls back to the name when no symbol is given. Crypto ids are
    lower-cased (CoinGecko ids: 'bitcoin'), stock tickers upper-cased.
    """
    raw = symbol.strip() if symbol and symbol.strip() else (name or "").strip()
    if asset_class == AssetClass.CRYPTO:
        return raw.lower()
    if asset_class == AssetClass.STOCK:
        return raw.upper()
    return raw


class PriceResolver:
    """Resolve the current price of an asset from the source of its asset class."""

    def __init__(
        self,
        providers: dict[AssetClass, PriceSourceProvider],
        retry_policies: Optional[dict[AssetClass, RetryPolicy]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        ):
        self.providers = providers
        self.retry_policies = retry_policies or {}
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ) -> "PriceResolver":
        settings = settings or get_settings()
        return cls(
            providers=build_providers(settings, transport=transport),
            retry_policies=default_retry_policies(settings),
            )

    def policy_for(self, asset_class: AssetClass) -> RetryPolicy:
        return self.retry_policies.get(asset_class, NO_RETRY)

    async def resolve_price(
        self,
        asset_class: Union[AssetClass, str],
        symbol: Optional[str],
        name: Optional[str],
        ) -> PriceQuote:
        """
        Resolve the current quote for an asset.

        Returns:
            PriceQuote with a positive price

        Raises:
            PriceUnavailableError: no source for the asset class, source
                rejected the identifier, no positive price in the answer, or
                retries exhausted
            ConfigurationError: source credential missing
            ExternalServiceError: transient failure on a source without retries
        """
        asset_class = AssetClass(asset_class)
        not_found = f"{asset_class.value} price not found"
        identifier = normalize_symbol(asset_class, symbol, name)

        provider = self.providers.get(asset_class)
        if provider is None or not identifier:
            raise PriceUnavailableError(not_found, details={"symbol": identifier, "type": asset_class.value})

        quote = await self._fetch_with_retry(provider, identifier, self.policy_for(asset_class))

        if quote.price is None or quote.price <= 0:
            raise PriceUnavailableError(
                not_found,
                details={"symbol": identifier, "type": asset_class.value, "source": quote.source},
                )
        return quote

    async def _fetch_with_retry(
        self,
        provider: PriceSourceProvider,
        identifier: str,
        policy: RetryPolicy,
        ) -> PriceQuote:
        last_error: Optional[ExternalServiceError] = None

        for attempt in range(1, policy.max_attempts + 1):
            try:
                return await provider.get_current_price(identifier)
            except ExternalServiceError as e:
                last_error = e
                logger.warning(
                    "Price fetch failed",
                    provider=provider.provider_code,
                    symbol=identifier,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    error=e.message,
                    )
                if attempt < policy.max_attempts:
                    await self._sleep(policy.delay_before_retry(attempt))

        if not policy.retries_enabled:
            raise last_error

        raise PriceUnavailableError(
            f"{provider.asset_class.value} price not found after {policy.max_attempts} attempts: {last_error.message}",
            details={**last_error.details, "symbol": identifier, "attempts": policy.max_attempts},
            ) from last_error
