"""
Database session management.
Handles SQLite connection and session lifecycle with async support.
"""
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel.ext.asyncio.session import AsyncSession

from backend.app.config import get_settings
from backend.app.db.base import SQLModel

_async_engine: Optional[AsyncEngine] = None


def _to_async_url(db_url: str) -> str:
    """Convert sqlite:/// to sqlite+aiosqlite:/// and make sure the directory exists."""
    if db_url.startswith("sqlite:///"):
        db_path = db_url.replace("sqlite:///", "")
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return db_url.replace("sqlite:///", "sqlite+aiosqlite:///")
    return db_url


def create_engine_for_url(db_url: str) -> AsyncEngine:
    """
    Create an async engine for a database URL.

    NullPool for SQLite: each connection is independent, so the file is
    never held open between requests.
    """
    return create_async_engine(
        _to_async_url(db_url),
        echo=False,
        poolclass=NullPool,
        )


def get_async_engine() -> AsyncEngine:
    """
    Get the application-wide async engine (created on first use).

    Created lazily so test setup can point DATABASE_URL at the test
    database before the first connection.
    """
    global _async_engine
    if _async_engine is None:
        _async_engine = create_engine_for_url(get_settings().DATABASE_URL)
    return _async_engine


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create missing tables. There is no migration step: schema changes need a fresh database."""
    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session_generator() -> AsyncGenerator[AsyncSession, None]:
    """
    Get an async database session for dependency injection.

    Usage in FastAPI:
        @router.get("/")
        async def endpoint(session: AsyncSession = Depends(get_session_generator)):
            result = await session.exec(select(Holding))
            ...
    """
    async with AsyncSession(get_async_engine(), expire_on_commit=False) as session:
        yield session
