"""
Bulk price refresh.

RefreshOrchestrator re-prices every stored holding, one at a time:
- the exchange rate is read once for the whole batch
- each holding is resolved, revalued and committed on its own
- a failing holding is logged and reported, then skipped; holdings already
  updated stay updated and the remaining ones are still processed
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from backend.app.db.models import AssetClass, Holding
from backend.app.logging_config import get_logger
from backend.app.schemas.holdings import HoldingRead, RefreshFailure, RefreshReport
from backend.app.services.errors import NotFoundError, PortfolioError
from backend.app.services.exchange_rate import ExchangeRateCache
from backend.app.services.holding_repository import HoldingRepository
from backend.app.services.holding_service import valuation_fields
from backend.app.services.price_resolver import PriceResolver
from backend.app.services.valuation import CostBasisPolicy, first_observed_price

logger = get_logger(__name__)


class RefreshTarget(BaseModel):
    """
    Plain copy of the holding columns the refresh needs.

    Taken before the loop: a rollback after a failed item expires every ORM
    instance in the session, so the loop never reads from them.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    symbol: Optional[str]
    asset_type: AssetClass
    quantity: Decimal
    purchase_price: Optional[Decimal]

    @classmethod
    def from_model(cls, holding: Holding) -> "RefreshTarget":
        return cls(
            id=holding.id,
            name=holding.name,
            symbol=holding.symbol,
            asset_type=holding.asset_type,
            quantity=holding.quantity,
            purchase_price=holding.purchase_price,
            )


class RefreshOrchestrator:
    """Best-effort, sequential re-pricing of all holdings."""

    def __init__(
        self,
        repository: HoldingRepository,
        resolver: PriceResolver,
        rate_cache: ExchangeRateCache,
        cost_basis: CostBasisPolicy = first_observed_price,
        ):
        self.repository = repository
        self.resolver = resolver
        self.rate_cache = rate_cache
        self.cost_basis = cost_basis

    async def refresh_all(self) -> RefreshReport:
        """
        Refresh the price and valuation of every holding.

        Returns:
            RefreshReport with the updated holdings and one RefreshFailure per
            holding that could not be refreshed

        Raises:
            Whatever loading the holdings raises; nothing raised while
            processing a single holding escapes.
        """
        holdings = await self.repository.find()
        targets = [RefreshTarget.from_model(h) for h in holdings]
        rate = await self.rate_cache.get_rate()

        logger.info("Starting price refresh", holdings=len(targets), rate=str(rate) if rate is not None else None)

        report = RefreshReport()
        for target in targets:
            try:
                updated = await self.refresh_one(target, rate)
            except PortfolioError as e:
                logger.warning(
                    "Holding refresh failed",
                    holding_id=target.id,
                    name=target.name,
                    error=e.error_code,
                    message=e.message,
                    )
                await self.repository.session.rollback()
                report.failures.append(RefreshFailure(
                    holding_id=target.id,
                    name=target.name,
                    error=e.error_code,
                    message=e.message,
                    ))
            except Exception as e:
                # Unexpected failure on one holding must not abort the batch
                logger.exception("Unexpected error refreshing holding", holding_id=target.id, name=target.name)
                await self.repository.session.rollback()
                report.failures.append(RefreshFailure(
                    holding_id=target.id,
                    name=target.name,
                    error=type(e).__name__,
                    message=str(e),
                    ))
            else:
                report.updates.append(HoldingRead.from_model(updated))

        logger.info("Price refresh finished", updated=len(report.updates), failed=len(report.failures))
        return report

    async def refresh_one(self, target: RefreshTarget, rate: Optional[Decimal]) -> Holding:
        """Re-price one holding with an already fetched exchange rate."""
        quote = await self.resolver.resolve_price(target.asset_type, target.symbol, target.name)
        purchase_price = self.cost_basis(quote.price, target.purchase_price)

        fields = valuation_fields(quote.price, purchase_price, target.quantity, rate)
        updated = await self.repository.update_by_id(target.id, fields)
        if updated is None:
            # Deleted while the batch was running
            raise NotFoundError("Investment not found", details={"id": target.id})
        return updated
