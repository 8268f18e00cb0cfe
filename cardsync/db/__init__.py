"""Database Infrastructure — SQLAlchemy Base for the durable local store.

Invariants:
    - Single async engine per store (owned by DatabaseSessionManager)
    - All sessions are async (AsyncSession)

Design Decisions:
    - aiosqlite driver by default: the durable store is client-local, one file per profile
"""
