"""
Decimal utilities.

Market-data sources return JSON floats and strings; everything that reaches
the valuation code or the database goes through to_decimal() first, and is
truncated to the column scale before being stored.

Usage:
    from backend.app.utils.decimal_utils import to_decimal, truncate_holding

    price = to_decimal(50000.12)            # Decimal("50000.12")
    truncate_holding(Decimal("1.23456789"))  # Decimal("1.234567")
"""
import math
from decimal import Context, Decimal, InvalidOperation, ROUND_DOWN
from typing import Any, Optional, Type, Tuple

from sqlalchemy import Numeric
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel

from backend.app.db.models import Holding


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce a number-like value to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1") rather than its
    binary expansion. Strings are stripped; a trailing '%' is ignored.

    Returns:
        Decimal, or None for None/empty/unparseable/non-finite input
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        value = str(value)
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        value = value.strip().rstrip('%').strip()
        if not value:
            return None
        try:
            result = Decimal(value)
        except InvalidOperation:
            return None
        return result if result.is_finite() else None
    return None


def get_model_column_precision(model: Type[SQLModel], column_name: str) -> Tuple[int, int]:
    """
    Get (precision, scale) for a numeric column from SQLModel.

    Example:
        >>> get_model_column_precision(Holding, "amount")
        (18, 6)

    Raises:
        ValueError: If column not found or not a Numeric type
    """
    if not hasattr(model, '__table__'):
        raise ValueError(f"Model {model.__name__} has no __table__ attribute")

    table = model.__table__
    if column_name not in table.columns:
        raise ValueError(f"Column '{column_name}' not found in {model.__name__}")

    column_type = table.columns[column_name].type
    if isinstance(column_type, TypeDecorator):
        column_type = column_type.impl
    if not isinstance(column_type, Numeric):
        raise ValueError(
            f"Column '{column_name}' in {model.__name__} is not Numeric type "
            f"(found: {type(column_type).__name__})"
            )

    if column_type.precision is None or column_type.scale is None:
        raise ValueError(f"Column '{column_name}' in {model.__name__} has undefined precision/scale")

    return column_type.precision, column_type.scale


def truncate_to_db_precision(value: Decimal, model: Type[SQLModel], column_name: str) -> Decimal:
    """
    Truncate decimal to match database column precision.

    Uses ROUND_DOWN so the value returned to the client equals what the
    database will hand back on the next read.
    """
    precision, scale = get_model_column_precision(model, column_name)
    quantizer = Decimal(10) ** -scale
    # Wide columns need more digits than the default context (28)
    return value.quantize(quantizer, rounding=ROUND_DOWN, context=Context(prec=max(precision, 28)))


def truncate_holding(value: Optional[Decimal], column_name: str = "amount") -> Optional[Decimal]:
    """Truncate value with the precision used in DB holdings.<column_name>."""
    if value is None:
        return None
    return truncate_to_db_precision(value, Holding, column_name)
