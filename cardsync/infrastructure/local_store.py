"""Durable Local Store — string key-value store over SQLAlchemy async.

Invariants:
    - Implements core.repository_protocols.LocalStore
    - set() is an upsert; remove() of a missing key is a no-op
    - keys(prefix) returns keys in lexical order
    - Failures surface as LocalStoreError (mapped by DatabaseSessionManager)

Design Decisions:
    - session.merge for upsert: portable across SQLite and PostgreSQL without
      dialect-specific ON CONFLICT clauses
    - LIKE prefix query escapes % and _ so cache key prefixes match literally
"""

import logging

from sqlalchemy import delete, select

from cardsync.infrastructure.database import DatabaseSessionManager
from cardsync.models.local_store_entry import LocalStoreEntry

logger = logging.getLogger(__name__)


def _like_prefix(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


class SqlLocalStore:
    """LocalStore backed by a single local_store table."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    @classmethod
    def from_url(cls, database_url: str) -> "SqlLocalStore":
        return cls(DatabaseSessionManager(database_url))

    async def start(self) -> None:
        await self._db.create_all()

    async def close(self) -> None:
        await self._db.dispose()

    async def health_check(self) -> bool:
        return await self._db.health_check()

    async def get(self, key: str) -> str | None:
        async with self._db.session("get") as session:
            entry = await session.get(LocalStoreEntry, key)
            return entry.value if entry else None

    async def set(self, key: str, value: str) -> None:
        async with self._db.session("set") as session:
            await session.merge(LocalStoreEntry(key=key, value=value))
            await session.commit()

    async def remove(self, key: str) -> None:
        async with self._db.session("remove") as session:
            await session.execute(
                delete(LocalStoreEntry).where(LocalStoreEntry.key == key),
            )
            await session.commit()

    async def keys(self, prefix: str = "") -> list[str]:
        query = select(LocalStoreEntry.key).order_by(LocalStoreEntry.key)
        if prefix:
            query = query.where(
                LocalStoreEntry.key.like(_like_prefix(prefix), escape="\\"),
            )
        async with self._db.session("keys") as session:
            result = await session.execute(query)
            # SQLite LIKE is case-insensitive for ASCII
            return [k for k in result.scalars().all() if k.startswith(prefix)]
