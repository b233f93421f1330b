"""
Database base module.
SQLModel base classes and metadata.
Import all models here so create_all() sees every table.
"""
from sqlmodel import SQLModel

from backend.app.db.models import (
    # Enums
    AssetClass,
    # Models
    Holding,
    )

__all__ = [
    "SQLModel",
    "AssetClass",
    "Holding",
    ]
