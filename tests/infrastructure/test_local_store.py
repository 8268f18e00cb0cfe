"""Durable Local Store — verifies the SQL key-value store over aiosqlite.

Tests:
    - set/get/remove semantics (upsert, missing key → None, idempotent remove)
    - keys(prefix) matches literally (no LIKE wildcards) and case-sensitively
    - Values survive a new store instance on the same file
    - SQLAlchemy failures surface as LocalStoreError naming the operation
"""

import pytest

from cardsync.core.errors import LocalStoreError
from cardsync.infrastructure.local_store import SqlLocalStore


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'cardsync.db'}"


@pytest.fixture
async def sql_store(db_url):
    store = SqlLocalStore.from_url(db_url)
    await store.start()
    yield store
    await store.close()


async def test_set_get_remove(sql_store):
    assert await sql_store.get("missing") is None
    await sql_store.set("k", "v1")
    await sql_store.set("k", "v2")
    assert await sql_store.get("k") == "v2"
    await sql_store.remove("k")
    await sql_store.remove("k")
    assert await sql_store.get("k") is None


async def test_keys_prefix_is_literal(sql_store):
    for key in ("cache_a", "cache_b", "cacheXc", "Cache_d", "other"):
        await sql_store.set(key, "1")
    assert await sql_store.keys("cache_") == ["cache_a", "cache_b"]
    assert len(await sql_store.keys()) == 5


async def test_values_survive_reopen(db_url):
    first = SqlLocalStore.from_url(db_url)
    await first.start()
    await first.set("cards", '[{"id": "c1"}]')
    await first.close()

    second = SqlLocalStore.from_url(db_url)
    await second.start()
    assert await second.get("cards") == '[{"id": "c1"}]'
    await second.close()


async def test_health_check(sql_store):
    assert await sql_store.health_check()


async def test_missing_schema_raises_local_store_error(db_url):
    store = SqlLocalStore.from_url(db_url)
    with pytest.raises(LocalStoreError) as exc_info:
        await store.get("k")
    assert exc_info.value.operation == "get"
    assert exc_info.value.http_status == 503
    await store.close()


async def test_unopenable_file_is_unhealthy(tmp_path):
    store = SqlLocalStore.from_url(
        f"sqlite+aiosqlite:///{tmp_path / 'missing-dir' / 'cardsync.db'}",
    )
    assert await store.health_check() is False
    with pytest.raises(LocalStoreError) as exc_info:
        await store.set("k", "v")
    assert exc_info.value.operation == "set"
    await store.close()
