"""
Holding and pricing schemas.

**Domain Coverage**:
- HoldingWrite: create/update request body
- HoldingRead: holding record as returned to clients (camelCase JSON keys)
- PriceQuote: ephemeral quote returned by a price source
- ValuationSnapshot: derived valuation fields for one holding
- ExchangeRateSnapshot: cached USD->local rate
- RefreshFailure / RefreshReport / BulkRefreshResponse: bulk price refresh results

**Design Notes**:
- HoldingWrite is deliberately loose (everything optional, quantity may be a
  string): required-field and quantity checks are done by HoldingService so
  they produce the 400 {message, error} body instead of a schema error.
- Derived fields (amount, profitLoss, profitLossPercentage, purchasePrice,
  currentPrice) are not part of HoldingWrite, so clients cannot set them.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backend.app.db.models import AssetClass, Holding
from backend.app.schemas.common import JsonDecimal


# ============================================================================
# REQUESTS
# ============================================================================

class HoldingWrite(BaseModel):
    """Body of POST / and PUT /{id}."""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    symbol: Optional[str] = None
    quantity: Optional[Union[float, str]] = None
    type: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None


# ============================================================================
# RESPONSES
# ============================================================================

class HoldingRead(BaseModel):
    """Holding record as exposed over HTTP."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str
    symbol: Optional[str] = None
    asset_type: AssetClass = Field(alias="type")
    quantity: JsonDecimal
    amount: JsonDecimal
    purchase_price: Optional[JsonDecimal] = None
    current_price: Optional[JsonDecimal] = None
    profit_loss: Optional[JsonDecimal] = None
    profit_loss_percentage: Optional[JsonDecimal] = None
    last_updated: datetime
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, holding: Holding) -> HoldingRead:
        return cls(
            id=holding.id,
            name=holding.name,
            symbol=holding.symbol,
            asset_type=holding.asset_type,
            quantity=holding.quantity,
            amount=holding.amount,
            purchase_price=holding.purchase_price,
            current_price=holding.current_price,
            profit_loss=holding.profit_loss,
            profit_loss_percentage=holding.profit_loss_percentage,
            last_updated=holding.last_updated,
            notes=holding.notes,
            tags=holding.tag_list,
            created_at=holding.created_at,
            updated_at=holding.updated_at,
            )


class HoldingDeleteResponse(BaseModel):
    message: str = "Investment removed"
    investment: HoldingRead


# ============================================================================
# PRICING
# ============================================================================

class PriceQuote(BaseModel):
    """
    Current market quote for one asset, in USD.

    price is None when the source answered but had no price for the
    identifier; PriceResolver turns that into PriceUnavailableError.
    """
    model_config = ConfigDict(frozen=True)

    price: Optional[Decimal] = None
    change_24h: Optional[Decimal] = None
    change_percent: Optional[Decimal] = Field(default=None, description="Stocks only")
    last_updated: Optional[datetime] = None
    source: str = ""


class ValuationSnapshot(BaseModel):
    """Derived valuation fields, recomputed whenever current_price changes."""
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    profit_loss: Decimal
    profit_loss_percentage: Optional[Decimal] = Field(
        default=None, description="None when purchase price is zero"
        )


class ExchangeRateSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: Decimal
    fetched_at: datetime


# ============================================================================
# BULK REFRESH
# ============================================================================

class RefreshFailure(BaseModel):
    """One holding that could not be refreshed."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    holding_id: Optional[int]
    name: str
    error: str = Field(..., description="Error code, e.g. PRICE_UNAVAILABLE")
    message: str


class RefreshReport(BaseModel):
    """Result of RefreshOrchestrator.refresh_all()."""

    updates: list[HoldingRead] = Field(default_factory=list)
    failures: list[RefreshFailure] = Field(default_factory=list)


class BulkRefreshResponse(BaseModel):
    message: str = "Prices updated successfully"
    updates: list[HoldingRead]
    failures: list[RefreshFailure] = Field(default_factory=list)
