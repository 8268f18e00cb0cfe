"""LocalStoreEntry ORM — one row per durable key.

Invariants:
    - key is the primary key; set() overwrites in place
    - value is an opaque string (callers serialize; no TTL semantics here)
    - updated_at refreshed on every write

Design Decisions:
    - Text value column: cache entries and the card archive are JSON documents,
      schema changes in them never need a migration
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from cardsync.db.base import Base


class LocalStoreEntry(Base):
    """Durable key-value record."""
    __tablename__ = "local_store"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
