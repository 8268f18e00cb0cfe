"""ORM Models — SQLAlchemy declarative models for the durable local store.

Invariants:
    - All models inherit from Base (db/base.py)

Design Decisions:
    - All models imported here so Base.metadata is complete before create_all()
"""

from cardsync.models.local_store_entry import LocalStoreEntry  # noqa: F401
