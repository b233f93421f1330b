"""
Database models for the IPM backend.

All models use SQLModel (SQLAlchemy 2.x) with the following conventions:
- Money columns use Numeric(18, 6); unit prices use PriceDecimal, Numeric(38, 18),
  so sub-micro coin prices survive storage
- Timestamps in UTC (created_at, updated_at, last_updated)
- Free-form lists are stored as JSON text
"""
import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Index, Numeric, Text
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

from backend.app.utils.datetime_utils import utcnow


# ============================================================================
# ENUMS
# ============================================================================

class AssetClass(str, Enum):
    """
    Asset class of a holding.

    Selects the market-data source and the retry policy used to price it:
    - Stock: priced by ticker symbol (upper-case) via Alpha Vantage
    - Crypto: priced by coin id (lower-case) via CoinGecko
    - Other: no automatic pricing source
    """
    STOCK = "Stock"
    CRYPTO = "Crypto"
    OTHER = "Other"


# ============================================================================
# COLUMN TYPES
# ============================================================================

class PriceDecimal(TypeDecorator):
    """
    Unit price column: Numeric(38, 18).

    SQLite keeps Numeric values as REAL. Reading them back at a fixed
    18-digit scale would expose binary noise (50000.12 becomes
    50000.120000000002619345), so values are read as float and converted
    through their shortest repr instead.
    """
    impl = Numeric
    cache_ok = True

    def __init__(self):
        super().__init__(precision=38, scale=18, asdecimal=False)

    def process_result_value(self, value, dialect) -> Optional[Decimal]:
        if value is None or isinstance(value, Decimal):
            return value
        return Decimal(str(value))


# ============================================================================
# MODELS
# ============================================================================

class Holding(SQLModel, table=True):
    """
    A single investment position.

    purchase_price is the cost basis: set once when the holding is created
    and carried over by every update and price refresh.

    amount, profit_loss and profit_loss_percentage are derived from
    current_price and are rewritten together whenever current_price changes.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        Index("ix_holdings_type_name", "asset_type", "name"),
        )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False)
    symbol: Optional[str] = Field(default=None)
    asset_type: AssetClass = Field(nullable=False)

    quantity: Decimal = Field(sa_column=Column(Numeric(18, 6), nullable=False))
    amount: Decimal = Field(sa_column=Column(Numeric(18, 6), nullable=False))
    purchase_price: Optional[Decimal] = Field(default=None, sa_column=Column(PriceDecimal()))
    current_price: Optional[Decimal] = Field(default=None, sa_column=Column(PriceDecimal()))
    profit_loss: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(18, 6)))
    profit_loss_percentage: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(18, 6)))
    last_updated: datetime = Field(default_factory=utcnow)

    notes: Optional[str] = Field(default=None, sa_column=Column(Text))
    # JSON array of strings, e.g. '["long-term", "tech"]'
    tags: Optional[str] = Field(default=None, sa_column=Column(Text))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def tag_list(self) -> list[str]:
        if not self.tags:
            return []
        try:
            value = json.loads(self.tags)
        except ValueError:
            return []
        return [str(t) for t in value] if isinstance(value, list) else []

    @staticmethod
    def encode_tags(tags: Optional[list[str]]) -> Optional[str]:
        if tags is None:
            return None
        return json.dumps(list(tags))
