"""Alembic environment — migrations for the durable local store.

Invariants:
    - The store URL comes from cardsync.config.Settings (CARDSYNC_LOCAL_STORE_URL),
      so migrations always target the file the client opens
    - SQLite migrations run in batch mode (ALTER TABLE is emulated by copy-and-swap)

Design Decisions:
    - Async engine with NullPool: the same URL string works for the client
      (aiosqlite) and for any async driver the gateway is deployed with
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

from cardsync.config import Settings
from cardsync.db.base import Base
import cardsync.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# configparser interpolates %, so escape it in URL-encoded credentials
config.set_main_option("sqlalchemy.url", Settings().local_store_url.replace("%", "%%"))
target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_run_sync)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
