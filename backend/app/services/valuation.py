"""
Valuation of a holding from a resolved price.

Pure functions, no I/O:
- compute_snapshot(): amount / profit-loss / profit-loss percentage
- CostBasisPolicy: how the purchase price is chosen when a price is resolved
"""
from decimal import Decimal
from typing import Any, Optional, Protocol

from backend.app.schemas.holdings import ValuationSnapshot
from backend.app.utils.decimal_utils import to_decimal

HUNDRED = Decimal(100)
ONE = Decimal(1)


class CostBasisPolicy(Protocol):
    def __call__(self, resolved_price: Decimal, existing_purchase_price: Optional[Decimal]) -> Decimal:
        ...


def first_observed_price(resolved_price: Decimal, existing_purchase_price: Optional[Decimal]) -> Decimal:
    """
    Cost basis is the first market price ever observed for the holding.

    A new holding has no purchase price yet, so the resolved price becomes
    its cost basis; afterwards the stored value always wins.
    """
    if existing_purchase_price is not None:
        return existing_purchase_price
    return resolved_price


def _require_decimal(value: Any, name: str) -> Decimal:
    result = to_decimal(value)
    if result is None:
        raise ValueError(f"{name} must be a finite number, got {value!r}")
    return result


def compute_snapshot(
    current_price: Any,
    purchase_price: Any,
    quantity: Any,
    exchange_rate: Any = None,
    ) -> ValuationSnapshot:
    """
    Compute the valuation snapshot of a holding.

    Args:
        current_price: Resolved unit price (source currency)
        purchase_price: Cost basis unit price (source currency)
        quantity: Units held
        exchange_rate: Source->local rate; None means no rate is available and
            the amount stays in source currency (rate treated as 1)

    Returns:
        ValuationSnapshot where profit_loss_percentage is None if purchase_price is 0

    Example:
        >>> compute_snapshot(60000, 50000, 3, 83)
        ValuationSnapshot(amount=Decimal('14940000'), profit_loss=Decimal('30000'), profit_loss_percentage=Decimal('20.0'))
    """
    current = _require_decimal(current_price, "current_price")
    purchase = _require_decimal(purchase_price, "purchase_price")
    qty = _require_decimal(quantity, "quantity")
    rate = to_decimal(exchange_rate) or ONE

    difference = current - purchase
    percentage = None if purchase == 0 else difference / purchase * HUNDRED

    return ValuationSnapshot(
        amount=current * qty * rate,
        profit_loss=difference * qty,
        profit_loss_percentage=percentage,
        )
