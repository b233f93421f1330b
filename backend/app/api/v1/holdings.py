"""
Investment holdings API endpoints.

- GET /investments: List holdings (filter by type/tags, sort)
- POST /investments: Create a holding priced at the current market price
- GET /investments/update-prices: Re-price every holding
- PUT /investments/{id}: Update a holding and revalue it
- DELETE /investments/{id}: Remove a holding

Errors are raised as PortfolioError subclasses and rendered by the exception
handlers registered in main.py.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from backend.app.db.session import get_session_generator
from backend.app.logging_config import get_logger
from backend.app.schemas.common import ErrorResponse
from backend.app.schemas.holdings import (
    BulkRefreshResponse,
    HoldingDeleteResponse,
    HoldingRead,
    HoldingWrite,
    )
from backend.app.services.holding_service import HoldingService
from backend.app.services.pricing import PricingContext
from backend.app.services.refresh import RefreshOrchestrator

logger = get_logger(__name__)

holding_router = APIRouter(
    prefix="/investments",
    tags=["investments"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        404: {"model": ErrorResponse, "description": "Unknown holding or no price available"},
        500: {"model": ErrorResponse, "description": "Price source misconfigured or failing"},
        },
    )


def get_pricing_context(request: Request) -> PricingContext:
    """PricingContext created by the application lifespan."""
    return request.app.state.pricing


def get_holding_service(
    session: AsyncSession = Depends(get_session_generator),
    pricing: PricingContext = Depends(get_pricing_context),
    ) -> HoldingService:
    return pricing.holding_service(session)


def get_refresh_orchestrator(
    session: AsyncSession = Depends(get_session_generator),
    pricing: PricingContext = Depends(get_pricing_context),
    ) -> RefreshOrchestrator:
    return pricing.refresh_orchestrator(session)


# =============================================================================
# READ
# =============================================================================

@holding_router.get("", response_model=List[HoldingRead])
async def list_holdings(
    type: Optional[str] = Query(None, description="Asset type (Stock, Crypto, Other)"),
    tags: Optional[str] = Query(None, description="Comma-separated tags, match any"),
    sort: Optional[str] = Query(None, description="field:asc|desc, default createdAt:desc"),
    service: HoldingService = Depends(get_holding_service),
    ) -> List[HoldingRead]:
    holdings = await service.list_holdings(asset_type=type, tags=tags, sort=sort)
    return [HoldingRead.from_model(h) for h in holdings]


# =============================================================================
# CREATE
# =============================================================================

@holding_router.post("", response_model=HoldingRead)
async def create_holding(
    payload: HoldingWrite,
    service: HoldingService = Depends(get_holding_service),
    ) -> HoldingRead:
    """
    Create a holding.

    The current market price becomes both purchasePrice and currentPrice.

    Raises:
        400: missing name/quantity/type, invalid quantity or type
        404: no price available for the asset
        500: price source misconfigured or failing
    """
    holding = await service.create_holding(payload)
    return HoldingRead.from_model(holding)


# =============================================================================
# BULK REFRESH
# =============================================================================

# Declared before /{holding_id} routes
@holding_router.get("/update-prices", response_model=BulkRefreshResponse)
async def update_prices(
    orchestrator: RefreshOrchestrator = Depends(get_refresh_orchestrator),
    ) -> BulkRefreshResponse:
    """
    Re-price every holding, one at a time.

    Holdings that fail are skipped and listed in `failures`; the request
    itself only fails if the holdings cannot be loaded.
    """
    report = await orchestrator.refresh_all()
    logger.info("Bulk price refresh served", updated=len(report.updates), failed=len(report.failures))
    return BulkRefreshResponse(updates=report.updates, failures=report.failures)


# =============================================================================
# UPDATE / DELETE
# =============================================================================

@holding_router.put("/{holding_id}", response_model=HoldingRead)
async def update_holding(
    holding_id: int,
    payload: HoldingWrite,
    service: HoldingService = Depends(get_holding_service),
    ) -> HoldingRead:
    """
    Update a holding and revalue it at the current market price.

    purchasePrice is kept from the stored record.
    """
    holding = await service.update_holding(holding_id, payload)
    return HoldingRead.from_model(holding)


@holding_router.delete("/{holding_id}", response_model=HoldingDeleteResponse)
async def delete_holding(
    holding_id: int,
    service: HoldingService = Depends(get_holding_service),
    ) -> HoldingDeleteResponse:
    holding = await service.delete_holding(holding_id)
    return HoldingDeleteResponse(investment=HoldingRead.from_model(holding))
