"""
Common schemas shared across the API and service layers.

**Domain Coverage**:
- ErrorResponse: JSON body returned for every failed request
- SortSpec: parsed `field:asc|desc` sort expression
- HoldingFilter: list filters (asset type, tags)
- JsonDecimal: Decimal that serializes as a JSON number
"""
from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from backend.app.db.models import AssetClass

# Decimals are kept exact internally but clients expect plain JSON numbers
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ErrorResponse(BaseModel):
    """Error body: {message, error, details?}."""
    model_config = ConfigDict(extra="forbid")

    message: str
    error: str
    details: Optional[dict[str, Any]] = None


class SortSpec(BaseModel):
    """
    Sort expression for holding lists.

    `field` is a Holding column name; the API accepts the camelCase names
    used in JSON (createdAt, profitLoss...) and maps them before building
    this object.
    """
    model_config = ConfigDict(frozen=True)

    field: str = "created_at"
    descending: bool = True

    @classmethod
    def parse(cls, raw: Optional[str]) -> SortSpec:
        """
        Parse 'field:asc|desc'.

        Anything other than 'desc' sorts ascending ('name' alone sorts by
        name ascending). An empty expression gives the default createdAt:desc.
        """
        if raw is None or not raw.strip():
            return cls()
        field, _, order = raw.strip().partition(":")
        return cls(field=field.strip(), descending=order.strip().lower() == "desc")


class HoldingFilter(BaseModel):
    """Filters for listing holdings. tags match if the holding has any of them."""
    model_config = ConfigDict(frozen=True)

    asset_type: Optional[AssetClass] = None
    tags: list[str] = Field(default_factory=list)

    @staticmethod
    def split_tags(raw: Optional[str]) -> list[str]:
        """Split a comma-separated query value, dropping blanks."""
        if not raw:
            return []
        return [t.strip() for t in raw.split(",") if t.strip()]
