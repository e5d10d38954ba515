"""Async engine and session management for the spreadsheet store."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from spreadsheet_ingest.config import settings
from spreadsheet_ingest.utils.exceptions import StoreError

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def build_engine(url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine for ``url`` (defaults to the configured URL)."""
    return create_async_engine(
        url or settings.get_database_url(),
        echo=settings.database_echo if echo is None else echo,
        pool_pre_ping=True,
    )


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the global session factory, creating the engine on first use."""
    global _engine, _sessionmaker
    if _sessionmaker is None:
        _engine = build_engine()
        _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False)
    return _sessionmaker


def set_sessionmaker(factory: async_sessionmaker[AsyncSession] | None) -> None:
    """Replace the global session factory. Used primarily for testing."""
    global _sessionmaker
    _sessionmaker = factory


async def dispose_engine() -> None:
    """Dispose the global engine and forget the session factory."""
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Provide a transactional session that commits on success.

    SQLAlchemy failures, including the final commit, are raised as StoreError.
    """
    maker = factory or get_sessionmaker()
    async with maker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise StoreError(
                f"Spreadsheet store operation failed: {e}",
                details={"error_type": type(e).__name__},
            ) from e
        except BaseException:
            await session.rollback()
            raise
