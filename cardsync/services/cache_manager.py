"""Cache Manager — versioned, TTL-based read-through cache over memory and durable tiers.

Invariants:
    - set() writes the memory tier and mirrors the entry into the durable tier
    - get() checks memory first, then the durable tier; valid durable hits are promoted
    - An invalid entry (expired OR stale version) is a miss and is deleted from both
      tiers on that read: callers never see stale data through get()
    - The global version rotates when the clock crosses a version quantum, or on
      bust_cache(); rotation touches no entries (lazy invalidation)
    - wrap() serves the last known value, even stale, when the fetcher fails; it
      re-raises only when nothing was ever cached for the key
    - Durable-tier failures degrade to memory-only and are logged, never raised
    - The memory tier never exceeds max_memory_entries after a set() or a promotion
    - Both tiers hold a JSON snapshot of the payload; reads return copies, so mutating
      a result never changes the cache

Design Decisions:
    - Durable keys are prefix + logical key (no version in the key): a stale entry
      is found and removed on its next read instead of lingering as garbage
    - Pattern invalidation is a regex search over logical keys, applied to both tiers
    - One manager per key category (cards, stats) is possible by giving each its own
      prefix; the version quantum is per manager
"""

import copy
import logging
import re
import secrets
from collections import OrderedDict
from typing import Any, Awaitable, Callable, TypeVar

from cardsync.core.cache_entry import CacheEntry, make_version, version_bucket
from cardsync.core.errors import LocalStoreError
from cardsync.core.repository_protocols import Clock, LocalStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheManager:
    """Two-tier cache with TTL, global version and stale-while-error reads."""

    def __init__(
        self,
        store: LocalStore,
        clock: Clock,
        *,
        key_prefix: str = "cardsync_cache_",
        default_ttl: float = 300.0,
        max_memory_entries: int = 100,
        version_quantum: float = 600.0,
    ):
        self._store = store
        self._clock = clock
        self.key_prefix = key_prefix
        self.default_ttl = default_ttl
        self.max_memory_entries = max_memory_entries
        self._quantum = version_quantum
        self._memory: OrderedDict[str, CacheEntry] = OrderedDict()
        self._bucket = version_bucket(clock.now(), version_quantum)
        self._nonce = secrets.token_hex(3)
        logger.info(f"CacheManager initialized with version {self.version}")

    # ─── Version ────────────────────────────────────────────────

    @property
    def version(self) -> str:
        bucket = version_bucket(self._clock.now(), self._quantum)
        if bucket != self._bucket:
            self._bucket = bucket
            self._nonce = secrets.token_hex(3)
            logger.info(f"Cache version rotated to {make_version(bucket, self._nonce)}")
        return make_version(self._bucket, self._nonce)

    def bust_cache(self) -> str:
        """Rotate the global version; every existing entry becomes a miss on next access."""
        previous = self.version
        nonce = secrets.token_hex(3)
        while make_version(self._bucket, nonce) == previous:
            nonce = secrets.token_hex(3)
        self._nonce = nonce
        logger.info(f"Cache busted: {previous} -> {self.version}")
        return self.version

    # ─── Read / Write ───────────────────────────────────────────

    async def set(self, key: str, data: Any, ttl: float | None = None) -> None:
        entry = CacheEntry(
            key=key,
            payload=data,
            timestamp=self._clock.now(),
            ttl=ttl if ttl is not None else self.default_ttl,
            version=self.version,
        )
        raw = entry.to_json()
        # memory holds the same JSON snapshot as the durable tier, not the caller's object
        self._memory[key] = CacheEntry.from_json(raw)
        self._memory.move_to_end(key)
        try:
            await self._store.set(self._durable_key(key), raw)
        except LocalStoreError as e:
            logger.warning(
                f"Durable cache write failed, memory only: {e.message}",
                extra={"cache_key": key},
            )
        if len(self._memory) > self.max_memory_entries:
            self._shrink_memory()
        logger.debug(f"Cached {key} (ttl {entry.ttl}s)", extra={"cache_key": key})

    async def get(self, key: str) -> Any | None:
        entry = await self._lookup(key)
        if entry is None:
            logger.debug(f"Cache miss: {key}", extra={"cache_key": key})
            return None
        if not entry.is_valid(self._clock.now(), self.version):
            logger.debug(f"Cache entry invalid: {key}", extra={"cache_key": key})
            await self.delete(key)
            return None
        if key not in self._memory:
            self._memory[key] = entry
            if len(self._memory) > self.max_memory_entries:
                self._shrink_memory()
        logger.debug(f"Cache hit: {key}", extra={"cache_key": key})
        return copy.deepcopy(entry.payload)

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def delete(self, key: str) -> None:
        self._memory.pop(key, None)
        try:
            await self._store.remove(self._durable_key(key))
        except LocalStoreError as e:
            logger.warning(
                f"Durable cache delete failed: {e.message}", extra={"cache_key": key},
            )

    async def wrap(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        ttl: float | None = None,
        force_refresh: bool = False,
    ) -> T:
        """Read-through: cached value unless force_refresh; stale value if the fetch fails."""
        entry = await self._lookup(key)
        if (
            not force_refresh
            and entry is not None
            and entry.is_valid(self._clock.now(), self.version)
        ):
            return copy.deepcopy(entry.payload)

        try:
            data = await fetcher()
        except Exception:
            if entry is not None:
                logger.warning(
                    f"Serving stale cache for {key} after fetch error",
                    extra={"cache_key": key},
                )
                return copy.deepcopy(entry.payload)
            raise
        await self.set(key, data, ttl)
        return data

    # ─── Invalidation ───────────────────────────────────────────

    async def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key (both tiers) whose logical key matches the regex."""
        regex = re.compile(pattern)
        invalidated: set[str] = set()
        for key in [k for k in self._memory if regex.search(k)]:
            del self._memory[key]
            invalidated.add(key)
        for durable_key in await self._durable_keys():
            key = durable_key[len(self.key_prefix):]
            if regex.search(key):
                try:
                    await self._store.remove(durable_key)
                    invalidated.add(key)
                except LocalStoreError as e:
                    logger.warning(
                        f"Durable cache invalidation failed: {e.message}",
                        extra={"cache_key": key},
                    )
        logger.info(f"Invalidated {len(invalidated)} keys matching {pattern!r}")
        return len(invalidated)

    async def sweep(self) -> int:
        """Remove every invalid entry from both tiers."""
        now = self._clock.now()
        version = self.version
        cleaned = 0
        for key in [k for k, e in self._memory.items() if not e.is_valid(now, version)]:
            del self._memory[key]
            cleaned += 1
        for durable_key in await self._durable_keys():
            try:
                raw = await self._store.get(durable_key)
                if raw is None:
                    continue
                try:
                    valid = CacheEntry.from_json(raw).is_valid(now, version)
                except ValueError:
                    valid = False
                if not valid:
                    await self._store.remove(durable_key)
                    cleaned += 1
            except LocalStoreError as e:
                logger.warning(f"Durable cache sweep failed: {e.message}")
                break
        if cleaned:
            logger.info(f"Swept {cleaned} invalid cache entries")
        return cleaned

    async def clear(self) -> None:
        self._memory.clear()
        for durable_key in await self._durable_keys():
            try:
                await self._store.remove(durable_key)
            except LocalStoreError as e:
                logger.warning(f"Durable cache clear failed: {e.message}")
                break
        logger.info("Cache cleared")

    def stats(self) -> dict[str, Any]:
        return {
            "memory_entries": len(self._memory),
            "version": self.version,
            "key_prefix": self.key_prefix,
        }

    # ─── Internals ──────────────────────────────────────────────

    def _durable_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def _durable_keys(self) -> list[str]:
        try:
            return await self._store.keys(self.key_prefix)
        except LocalStoreError as e:
            logger.warning(f"Durable cache listing failed: {e.message}")
            return []

    async def _lookup(self, key: str) -> CacheEntry | None:
        """Entry for key from either tier, without validity checks."""
        entry = self._memory.get(key)
        if entry is not None:
            return entry
        try:
            raw = await self._store.get(self._durable_key(key))
        except LocalStoreError as e:
            logger.warning(
                f"Durable cache read failed: {e.message}", extra={"cache_key": key},
            )
            return None
        if raw is None:
            return None
        try:
            return CacheEntry.from_json(raw)
        except ValueError:
            logger.warning(f"Dropping malformed cache entry {key}", extra={"cache_key": key})
            await self.delete(key)
            return None

    def _shrink_memory(self) -> None:
        """Drop invalid entries, then the oldest, until within capacity (memory tier only)."""
        now = self._clock.now()
        version = self.version
        for key in [k for k, e in self._memory.items() if not e.is_valid(now, version)]:
            del self._memory[key]
        while len(self._memory) > self.max_memory_entries:
            self._memory.popitem(last=False)
