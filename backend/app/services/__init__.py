"""
Services package.
Business logic and external integrations.

Pricing pipeline:
- PriceResolver: current price per asset class, with per-class retry policy
- ExchangeRateCache: USD -> local currency rate with TTL and stale fallback
- valuation: amount / profit-loss snapshot, cost basis policy
- HoldingService: create / update / list / delete flows
- RefreshOrchestrator: best-effort bulk price refresh
- PricingContext: application-wide owner of the resolver and rate cache
"""
from backend.app.services.errors import (
    PortfolioError,
    ValidationError,
    NotFoundError,
    PriceUnavailableError,
    ConfigurationError,
    ExternalServiceError,
    )
from backend.app.services.holding_service import HoldingService
from backend.app.services.pricing import PricingContext
from backend.app.services.refresh import RefreshOrchestrator

__all__ = [
    "PortfolioError",
    "ValidationError",
    "NotFoundError",
    "PriceUnavailableError",
    "ConfigurationError",
    "ExternalServiceError",
    "HoldingService",
    "PricingContext",
    "RefreshOrchestrator",
    ]
