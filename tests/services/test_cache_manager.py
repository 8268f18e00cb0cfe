"""Cache Manager — verifies two-tier TTL/version caching and stale-while-error reads.

Tests:
    - set then get returns an equal value; bust_cache() makes it a miss before TTL
    - Expired entries are misses and are removed from both tiers on read
    - Durable hits are promoted back into memory
    - The version rotates when the clock crosses a quantum
    - wrap() serves stale data when the fetcher fails, raises only with nothing cached
    - invalidate_pattern() removes matching keys from both tiers
    - Durable-tier failures degrade to memory only
    - The memory tier stays within capacity, including after promotions
    - Mutating a returned or stored payload never changes the cached value
"""

import pytest

from cardsync.core.errors import NetworkFailure
from cardsync.services.cache_manager import CacheManager

PAYLOAD = {"id": "c1", "content": {"title": "Hello", "tags": ["a", "b"]}}


async def test_set_then_get_round_trips(cache):
    await cache.set("card:id:c1", PAYLOAD, ttl=60)
    assert await cache.get("card:id:c1") == PAYLOAD


async def test_set_mirrors_into_durable_tier(cache, local_store):
    await cache.set("card:id:c1", PAYLOAD)
    assert "cardsync_cache_card:id:c1" in local_store.data


async def test_bust_cache_invalidates_before_ttl(cache):
    await cache.set("card:id:c1", PAYLOAD, ttl=3600)
    old_version = cache.version
    assert cache.bust_cache() != old_version
    assert await cache.get("card:id:c1") is None


async def test_expired_entry_is_a_miss_and_is_deleted(cache, clock, local_store):
    await cache.set("k", PAYLOAD, ttl=10)
    clock.advance(10)
    assert await cache.get("k") is None
    assert "cardsync_cache_k" not in local_store.data
    assert cache.stats()["memory_entries"] == 0


async def test_durable_hit_is_promoted_into_memory(local_store, clock):
    cache = CacheManager(local_store, clock, max_memory_entries=1)
    await cache.set("a", {"v": "a"})
    await cache.set("b", {"v": "b"})
    assert cache.stats()["memory_entries"] == 1

    assert await cache.get("a") == {"v": "a"}
    assert await cache.has("a")


async def test_version_rotates_across_quantum(local_store, clock):
    cache = CacheManager(local_store, clock, version_quantum=600)
    await cache.set("k", PAYLOAD, ttl=3600)
    clock.advance(600)
    assert await cache.get("k") is None


async def test_wrap_fetches_once_then_serves_cache(cache):
    calls = []

    async def fetcher():
        calls.append(1)
        return PAYLOAD

    assert await cache.wrap("k", fetcher) == PAYLOAD
    assert await cache.wrap("k", fetcher) == PAYLOAD
    assert len(calls) == 1
    await cache.wrap("k", fetcher, force_refresh=True)
    assert len(calls) == 2


async def test_wrap_serves_stale_value_when_fetch_fails(cache, clock):
    await cache.set("k", PAYLOAD, ttl=5)
    clock.advance(30)

    async def failing():
        raise NetworkFailure("down")

    assert await cache.wrap("k", failing) == PAYLOAD


async def test_wrap_raises_when_nothing_cached(cache):
    async def failing():
        raise NetworkFailure("down")

    with pytest.raises(NetworkFailure):
        await cache.wrap("k", failing)


async def test_invalidate_pattern_hits_both_tiers(cache, local_store, clock):
    await cache.set("stats:c1", {"views": 1})
    await cache.set("stats:c1:daily", {"views": 1})
    await cache.set("stats:c2", {"views": 2})
    # durable-only entry from another manager sharing the prefix
    other = CacheManager(local_store, clock)
    await other.set("stats:c1:weekly", {"views": 3})

    removed = await cache.invalidate_pattern(r"^stats:c1(:|$)")

    assert removed == 3
    assert await cache.get("stats:c2") == {"views": 2}
    assert not any(k.startswith("cardsync_cache_stats:c1") for k in local_store.data)


async def test_durable_failure_degrades_to_memory(cache, local_store):
    local_store.broken = True
    await cache.set("k", PAYLOAD)
    assert await cache.get("k") == PAYLOAD
    await cache.delete("k")
    assert await cache.get("k") is None


async def test_malformed_durable_entry_is_dropped(cache, local_store):
    local_store.data["cardsync_cache_k"] = "{broken"
    assert await cache.get("k") is None
    assert "cardsync_cache_k" not in local_store.data


async def test_memory_tier_respects_capacity(local_store, clock):
    cache = CacheManager(local_store, clock, max_memory_entries=3)
    for i in range(10):
        await cache.set(f"k{i}", i)
    assert cache.stats()["memory_entries"] == 3
    # evicted from memory, still served from the durable tier
    assert await cache.get("k0") == 0


async def test_sweep_and_clear(cache, clock, local_store):
    await cache.set("short", 1, ttl=5)
    await cache.set("long", 2, ttl=500)
    clock.advance(10)
    assert await cache.sweep() == 2  # memory + durable copy of "short"
    assert await cache.get("long") == 2
    await cache.clear()
    assert await cache.get("long") is None
    assert local_store.data == {}


async def test_promotion_respects_capacity(local_store, clock):
    cache = CacheManager(local_store, clock, max_memory_entries=2)
    for key in ("a", "b", "c"):
        await cache.set(key, {"v": key})

    assert await cache.get("a") == {"v": "a"}
    assert cache.stats()["memory_entries"] == 2


async def test_cached_payload_is_isolated_from_callers(cache):
    original = {"title": "Hello", "tags": ["a"]}
    await cache.set("k", original)
    original["tags"].append("written-after-set")

    first = await cache.get("k")
    first["tags"].append("mutated-by-reader")

    assert await cache.get("k") == {"title": "Hello", "tags": ["a"]}


async def test_wrap_returns_copies_of_cached_value(cache):
    async def fetch():
        return {"views": 1}

    value = await cache.wrap("stats:c1", fetch)
    value["views"] = 99
    assert await cache.wrap("stats:c1", fetch) == {"views": 1}
