"""
Application-wide pricing context.

Owns the long-lived pieces of the pricing pipeline (price resolver and
exchange rate cache) and builds the per-request services that combine them
with a database session.
"""
from typing import Optional

import httpx
from sqlmodel.ext.asyncio.session import AsyncSession

from backend.app.config import Settings, get_settings
from backend.app.services.exchange_rate import ExchangeRateCache, ExchangeRateSource
from backend.app.services.holding_repository import HoldingRepository
from backend.app.services.holding_service import HoldingService
from backend.app.services.price_resolver import PriceResolver
from backend.app.services.refresh import RefreshOrchestrator
from backend.app.services.valuation import CostBasisPolicy, first_observed_price


class PricingContext:
    """Resolver, rate cache and cost basis policy shared by all requests."""

    def __init__(
        self,
        resolver: PriceResolver,
        rate_cache: ExchangeRateCache,
        cost_basis: CostBasisPolicy = first_observed_price,
        ):
        self.resolver = resolver
        self.rate_cache = rate_cache
        self.cost_basis = cost_basis

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ) -> "PricingContext":
        """
        Build the context from settings.

        transport replaces the network for every outbound HTTP call (tests
        pass an httpx.MockTransport).
        """
        settings = settings or get_settings()
        source = ExchangeRateSource(
            url=settings.EXCHANGE_RATE_URL,
            currency=settings.LOCAL_CURRENCY,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
            )
        return cls(
            resolver=PriceResolver.from_settings(settings, transport=transport),
            rate_cache=ExchangeRateCache(source, ttl_seconds=settings.EXCHANGE_RATE_TTL_SECONDS),
            )

    def holding_service(self, session: AsyncSession) -> HoldingService:
        return HoldingService(HoldingRepository(session), self.resolver, self.rate_cache, self.cost_basis)

    def refresh_orchestrator(self, session: AsyncSession) -> RefreshOrchestrator:
        return RefreshOrchestrator(HoldingRepository(session), self.resolver, self.rate_cache, self.cost_basis)
