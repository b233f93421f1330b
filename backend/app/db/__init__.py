"""
Database module exports.
"""
from backend.app.db.models import AssetClass, Holding
from backend.app.db.session import (
    create_engine_for_url,
    get_async_engine,
    get_session_generator,
    init_db,
    )

__all__ = [
    "AssetClass",
    "Holding",
    "create_engine_for_url",
    "get_async_engine",
    "get_session_generator",
    "init_db",
    ]
