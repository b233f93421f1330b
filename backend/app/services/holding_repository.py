"""
Holding repository.

Thin async persistence layer over the holdings table. Each write commits on
its own, so a caller looping over holdings (bulk refresh) never holds a
transaction across items.
"""
from typing import Any, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from backend.app.db.models import Holding
from backend.app.logging_config import get_logger
from backend.app.schemas.common import HoldingFilter, SortSpec
from backend.app.services.errors import ValidationError
from backend.app.utils.datetime_utils import utcnow

logger = get_logger(__name__)

# JSON (camelCase) field names accepted in ?sort=, mapped to columns
SORT_ALIASES = {
    "id": "id",
    "_id": "id",
    "name": "name",
    "symbol": "symbol",
    "type": "asset_type",
    "quantity": "quantity",
    "amount": "amount",
    "purchasePrice": "purchase_price",
    "currentPrice": "current_price",
    "profitLoss": "profit_loss",
    "profitLossPercentage": "profit_loss_percentage",
    "lastUpdated": "last_updated",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    }


def resolve_sort_column(field: str) -> str:
    """Map a sort field (camelCase or column name) to a holdings column."""
    column = SORT_ALIASES.get(field, field)
    if column not in Holding.__table__.columns:
        raise ValidationError(
            f"Cannot sort by '{field}'",
            details={"sort": field, "allowed": sorted(SORT_ALIASES)},
            )
    return column


class HoldingRepository:
    """Durable store of holdings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(
        self,
        filters: Optional[HoldingFilter] = None,
        sort: Optional[SortSpec] = None,
        ) -> list[Holding]:
        """
        List holdings.

        Args:
            filters: asset type (exact match) and tags (match any)
            sort: column and direction; default created_at descending

        Returns:
            Holdings in the requested order (ties broken by id, same direction)
        """
        filters = filters or HoldingFilter()
        sort = sort or SortSpec()

        column = getattr(Holding, resolve_sort_column(sort.field))
        id_column = Holding.id
        if sort.descending:
            order = [column.desc(), id_column.desc()]
        else:
            order = [column.asc(), id_column.asc()]

        stmt = select(Holding)
        if filters.asset_type is not None:
            stmt = stmt.where(Holding.asset_type == filters.asset_type)
        stmt = stmt.order_by(*order)

        result = await self.session.exec(stmt)
        holdings = list(result.all())

        if filters.tags:
            wanted = set(filters.tags)
            holdings = [h for h in holdings if wanted.intersection(h.tag_list)]
        return holdings

    async def find_by_id(self, holding_id: int) -> Optional[Holding]:
        return await self.session.get(Holding, holding_id)

    async def create(self, fields: dict[str, Any]) -> Holding:
        holding = Holding(**fields)
        self.session.add(holding)
        await self._commit()
        await self.session.refresh(holding)
        logger.info("Holding created", holding_id=holding.id, name=holding.name)
        return holding

    async def update_by_id(self, holding_id: int, fields: dict[str, Any]) -> Optional[Holding]:
        """Apply fields to a holding. Returns None if it does not exist."""
        holding = await self.session.get(Holding, holding_id)
        if holding is None:
            return None

        for key, value in fields.items():
            setattr(holding, key, value)
        holding.updated_at = utcnow()

        self.session.add(holding)
        await self._commit()
        await self.session.refresh(holding)
        return holding

    async def delete_by_id(self, holding_id: int) -> Optional[Holding]:
        """Delete a holding. Returns the deleted record, or None if it did not exist."""
        holding = await self.session.get(Holding, holding_id)
        if holding is None:
            return None

        await self.session.delete(holding)
        await self._commit()
        logger.info("Holding deleted", holding_id=holding_id, name=holding.name)
        return holding

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except Exception as e:
            logger.error("Commit failed, rolling back", error=str(e))
            await self.session.rollback()
            raise
