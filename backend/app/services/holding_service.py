"""
Holding Service.

Create / update / list / delete flows on top of the pricing pipeline:
validate input -> resolve price -> exchange rate -> valuation -> persist.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from backend.app.db.models import AssetClass, Holding
from backend.app.logging_config import get_logger
from backend.app.schemas.common import HoldingFilter, SortSpec
from backend.app.schemas.holdings import HoldingWrite
from backend.app.services.errors import NotFoundError, ValidationError
from backend.app.services.exchange_rate import ExchangeRateCache
from backend.app.services.holding_repository import HoldingRepository
from backend.app.services.price_resolver import PriceResolver
from backend.app.services.valuation import CostBasisPolicy, compute_snapshot, first_observed_price
from backend.app.utils.datetime_utils import utcnow
from backend.app.utils.decimal_utils import to_decimal, truncate_holding

logger = get_logger(__name__)


class ValidHoldingInput(BaseModel):
    """HoldingWrite after validation."""
    model_config = ConfigDict(frozen=True)

    name: str
    symbol: Optional[str]
    asset_class: AssetClass
    quantity: Decimal
    notes: Optional[str]
    tags: Optional[list[str]]


def validate_holding_input(payload: HoldingWrite) -> ValidHoldingInput:
    """
    Check required fields, asset type and quantity.

    Raises:
        ValidationError: missing field, unknown type, or quantity not a positive number
    """
    name = payload.name.strip() if payload.name else ""
    type_value = payload.type.strip() if payload.type else ""
    missing = [
        field for field, present in (
            ("name", bool(name)),
            ("quantity", payload.quantity is not None and str(payload.quantity).strip() != ""),
            ("type", bool(type_value)),
            )
        if not present
        ]
    if missing:
        raise ValidationError("Please provide all required fields", details={"missing": missing})

    try:
        asset_class = AssetClass(type_value)
    except ValueError:
        raise ValidationError(
            f"Invalid type '{type_value}'",
            details={"allowed": [c.value for c in AssetClass]},
            )

    quantity = to_decimal(payload.quantity)
    if quantity is None or quantity <= 0:
        raise ValidationError("Invalid quantity", details={"quantity": str(payload.quantity)})

    symbol = payload.symbol.strip() if payload.symbol and payload.symbol.strip() else None
    return ValidHoldingInput(
        name=name,
        symbol=symbol,
        asset_class=asset_class,
        quantity=quantity,
        notes=payload.notes,
        tags=payload.tags,
        )


def valuation_fields(current_price: Decimal, purchase_price: Decimal, quantity: Decimal, rate: Optional[Decimal]) -> dict:
    """
    Price columns and the columns derived from them, truncated to their DB scale.

    The snapshot is computed from the truncated prices and quantity, so the
    stored amount always equals stored current_price x quantity x rate.
    """
    current_price = truncate_holding(current_price, "current_price")
    purchase_price = truncate_holding(purchase_price, "purchase_price")
    quantity = truncate_holding(quantity, "quantity")
    snapshot = compute_snapshot(current_price, purchase_price, quantity, rate)
    return {
        "quantity": quantity,
        "purchase_price": purchase_price,
        "current_price": current_price,
        "amount": truncate_holding(snapshot.amount, "amount"),
        "profit_loss": truncate_holding(snapshot.profit_loss, "profit_loss"),
        "profit_loss_percentage": truncate_holding(snapshot.profit_loss_percentage, "profit_loss_percentage"),
        "last_updated": utcnow(),
        }


class HoldingService:
    """Service for holding CRUD operations with live pricing."""

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

    async def list_holdings(
        self,
        asset_type: Optional[str] = None,
        tags: Optional[str] = None,
        sort: Optional[str] = None,
        ) -> list[Holding]:
        """
        List holdings.

        Args:
            asset_type: exact type match; a value outside the known types matches nothing
            tags: comma-separated, a holding matches if it has any of them
            sort: 'field:asc|desc' (default createdAt:desc)
        """
        asset_class = None
        if asset_type:
            try:
                asset_class = AssetClass(asset_type)
            except ValueError:
                return []

        filters = HoldingFilter(asset_type=asset_class, tags=HoldingFilter.split_tags(tags))
        return await self.repository.find(filters, SortSpec.parse(sort))

    async def create_holding(self, payload: HoldingWrite) -> Holding:
        """
        Create a holding priced at the current market price.

        The first resolved price is both purchase_price and current_price.

        Raises:
            ValidationError: invalid input
            PriceUnavailableError: no price for the asset
        """
        data = validate_holding_input(payload)

        quote = await self.resolver.resolve_price(data.asset_class, data.symbol, data.name)
        rate = await self.rate_cache.get_rate()
        purchase_price = self.cost_basis(quote.price, None)

        fields = {
            "name": data.name,
            "symbol": data.symbol or data.name,
            "asset_type": data.asset_class,
            "notes": data.notes,
            "tags": Holding.encode_tags(data.tags),
            **valuation_fields(quote.price, purchase_price, data.quantity, rate),
            }
        return await self.repository.create(fields)

    async def update_holding(self, holding_id: int, payload: HoldingWrite) -> Holding:
        """
        Update a holding and revalue it at the current market price.

        purchase_price is carried over from the stored record.

        Raises:
            ValidationError: invalid input
            NotFoundError: unknown holding id
            PriceUnavailableError: no price for the asset
        """
        data = validate_holding_input(payload)

        existing = await self.repository.find_by_id(holding_id)
        if existing is None:
            raise NotFoundError("Investment not found", details={"id": holding_id})
        stored_purchase_price = existing.purchase_price

        quote = await self.resolver.resolve_price(data.asset_class, data.symbol, data.name)
        rate = await self.rate_cache.get_rate()
        purchase_price = self.cost_basis(quote.price, stored_purchase_price)

        fields = {
            "name": data.name,
            "symbol": data.symbol or data.name,
            "asset_type": data.asset_class,
            **valuation_fields(quote.price, purchase_price, data.quantity, rate),
            }
        if data.notes is not None:
            fields["notes"] = data.notes
        if data.tags is not None:
            fields["tags"] = Holding.encode_tags(data.tags)

        updated = await self.repository.update_by_id(holding_id, fields)
        if updated is None:
            raise NotFoundError("Investment not found", details={"id": holding_id})
        logger.info("Holding updated", holding_id=holding_id, price=str(quote.price))
        return updated

    async def delete_holding(self, holding_id: int) -> Holding:
        deleted = await self.repository.delete_by_id(holding_id)
        if deleted is None:
            raise NotFoundError("Investment not found", details={"id": holding_id})
        return deleted
