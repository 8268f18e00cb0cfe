"""SQLAlchemy Declarative Base — shared metadata for the durable local store.

Invariants:
    - All models inherit from Base; Base.metadata is what create_all() and alembic see
    - Constraints are named by convention, so SQLite batch migrations can address them

Design Decisions:
    - Separate file for Base: models, the session manager and alembic env import it
      without importing each other
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
