"""
Pydantic schemas for IPM.

Used across multiple subsystems (DB, API, Services) to validate data structures
and standardize data exchange between components.

**Organization by Domain**:
- common.py: Shared schemas (JsonDecimal, ErrorResponse, SortSpec, HoldingFilter)
- holdings.py: Holding request/response models, price quotes, valuation and refresh results

**Design Notes**:
- All models use Pydantic v2
- JSON keys are camelCase (purchasePrice, profitLoss, ...) through aliases
- Schemas separated from API layer (no inline definitions)
"""
from backend.app.schemas.common import (
    JsonDecimal,
    ErrorResponse,
    SortSpec,
    HoldingFilter,
    )
from backend.app.schemas.holdings import (
    HoldingWrite,
    HoldingRead,
    HoldingDeleteResponse,
    PriceQuote,
    ValuationSnapshot,
    ExchangeRateSnapshot,
    RefreshFailure,
    RefreshReport,
    BulkRefreshResponse,
    )

__all__ = [
    # Common
    "JsonDecimal",
    "ErrorResponse",
    "SortSpec",
    "HoldingFilter",
    # Holdings
    "HoldingWrite",
    "HoldingRead",
    "HoldingDeleteResponse",
    # Pricing
    "PriceQuote",
    "ValuationSnapshot",
    "ExchangeRateSnapshot",
    # Bulk refresh
    "RefreshFailure",
    "RefreshReport",
    "BulkRefreshResponse",
    ]
