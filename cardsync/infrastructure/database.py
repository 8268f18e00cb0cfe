"""Database Session Manager — async engine with automatic rollback and health checks.

Invariants:
    - A failed operation rolls back its session (no partial commits leak)
    - Every SQLAlchemy exception leaves as LocalStoreError naming the store operation
    - Pool sizing only applied to server databases; SQLite gets SQLAlchemy's default pool

Design Decisions:
    - Owned by the store that uses it, not a module singleton: tests build isolated
      managers over in-memory SQLite and dispose them per test
    - expire_on_commit=False: prevents lazy-load issues in async context
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy import text

from cardsync.core.errors import LocalStoreError
from cardsync.db.base import Base

logger = logging.getLogger(__name__)


class DatabaseSessionManager:
    """Manages async database sessions with rollback and health checks."""

    def __init__(
        self, database_url: str, pool_size: int = 5, max_overflow: int = 5,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self, operation: str = "query") -> AsyncGenerator[AsyncSession, None]:
        """Session for one store operation; any SQLAlchemy failure rolls back and
        surfaces as LocalStoreError(operation)."""
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"Local store {operation} failed: {type(e).__name__}: {e}",
                    extra={"operation": operation},
                )
                raise LocalStoreError(_describe(e), operation) from e

    async def create_all(self) -> None:
        """Create missing tables (local stores provision themselves on first start)."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"DB schema creation failed: {e}")
            raise LocalStoreError("Schema creation failed", "create_all")

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.session("health_check") as db:
                await db.execute(text("SELECT 1"))
        except LocalStoreError:
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


def _describe(error: SQLAlchemyError) -> str:
    # OperationalError covers a locked or unreadable file and a missing table
    if isinstance(error, OperationalError):
        return "database unavailable or not provisioned"
    if isinstance(error, IntegrityError):
        return "constraint violated"
    return "database error"
