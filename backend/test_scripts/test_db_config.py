"""
Test Database Configuration

Manages test database setup and teardown.
Tests should use a separate database to avoid corrupting production/development data.

- setup_test_database(): switch the application to test mode before app modules are imported
- create_test_engine(): fresh, fully created SQLite database in a given directory,
  one per test so tests never see each other's holdings
"""
import os
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine

# Default test database URL (relative to project root)
DEFAULT_TEST_DATABASE_URL = "sqlite:///./backend/data/sqlite/test_app.db"

# Use environment override if present (allows CI or user to change path)
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", DEFAULT_TEST_DATABASE_URL)


def setup_test_database() -> str:
    """
    Configure environment to use test database.
    Must be called BEFORE importing any app modules that use DATABASE_URL.

    Returns:
        str: Test database URL
    """
    # Mirrors the --test flag: get_settings() will return TEST_DATABASE_URL
    os.environ["IPM_TEST_MODE"] = "1"
    os.environ["DATABASE_URL"] = TEST_DATABASE_URL
    return TEST_DATABASE_URL


async def create_test_engine(directory: Path) -> AsyncEngine:
    """
    Create an engine on a new SQLite file in `directory` and create all tables.

    Args:
        directory: usually pytest's tmp_path

    Returns:
        AsyncEngine ready to use; the caller disposes it
    """
    from backend.app.db.session import create_engine_for_url, init_db

    engine = create_engine_for_url(f"sqlite:///{directory / 'test_ipm.db'}")
    await init_db(engine)
    return engine
