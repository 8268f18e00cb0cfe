"""Card Sync Client — composition root wiring stores, engine, pipeline and migrator.

Invariants:
    - Nothing is a module-level singleton: every collaborator is constructed here (or
      injected) and owned by one client instance
    - start() must run before use; aclose() flushes pending saves before releasing
      the HTTP client and the durable store
    - Back/forward navigation re-runs the route guard and share-link resolution
    - handle_location() applies the route guard first; a redirected address is not resolved

Design Decisions:
    - build_client(settings) is the only place unit conversions (ms -> s) happen
    - Pop-navigation handlers are sync listeners; the async re-resolution runs as a
      tracked task so aclose() can wait for it
"""

import asyncio
import logging

from cardsync.config import Settings
from cardsync.core.repository_protocols import CardService, Clock, Scheduler
from cardsync.core.retry_policy import RetryPolicy, exponential_backoff
from cardsync.infrastructure.cards_api import HttpCardService
from cardsync.infrastructure.local_store import SqlLocalStore
from cardsync.infrastructure.navigation import HistoryLocation, HistoryNavigator
from cardsync.infrastructure.scheduler import LoopScheduler, SystemClock
from cardsync.infrastructure.session import SessionIdentityProvider
from cardsync.services.cache_manager import CacheManager
from cardsync.services.entity_store import EntityStore
from cardsync.services.legacy_migrator import LegacyUrlMigrator
from cardsync.services.local_archive import LocalCardArchive
from cardsync.services.resolution import Resolution, ResolutionPipeline
from cardsync.services.sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class CardSyncClient:
    """One user's client session: cards, cache, share links and navigation."""

    def __init__(
        self,
        *,
        identity: SessionIdentityProvider,
        navigator: HistoryNavigator,
        local_store: SqlLocalStore,
        service: CardService,
        store: EntityStore,
        cache: CacheManager,
        engine: SyncEngine,
        resolver: ResolutionPipeline,
        migrator: LegacyUrlMigrator,
    ):
        self.identity = identity
        self.navigator = navigator
        self.local_store = local_store
        self.service = service
        self.store = store
        self.cache = cache
        self.engine = engine
        self.resolver = resolver
        self.migrator = migrator
        self._pop_tasks: set[asyncio.Task] = set()
        self._unsubscribe = None

    async def start(self) -> None:
        await self.local_store.start()
        self._unsubscribe = self.navigator.subscribe(self._on_pop)
        logger.info("Card sync client started")

    async def wait_idle(self) -> None:
        """Wait for pending re-resolutions and in-flight saves."""
        while self._pop_tasks:
            tasks = list(self._pop_tasks)
            await asyncio.gather(*tasks, return_exceptions=True)
            self._pop_tasks.difference_update(tasks)
        await self.engine.wait_idle()

    async def aclose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.wait_idle()
        await self.engine.aclose()
        if isinstance(self.service, HttpCardService):
            await self.service.aclose()
        await self.local_store.close()
        logger.info("Card sync client closed")

    async def navigate(self, url: str) -> Resolution | None:
        self.navigator.push(url)
        return await self.handle_location()

    async def handle_location(self) -> Resolution | None:
        """Guard the current address, then resolve it if it is a share link."""
        decision = self.migrator.enforce()
        if decision.redirects:
            return None
        location = self.navigator.current()
        return await self.resolver.resolve_address(location.path, location.query)

    def _on_pop(self, location: HistoryLocation) -> None:
        logger.debug(f"History moved to {location.url}", extra={"path": location.path})
        task = asyncio.create_task(self.handle_location())
        self._pop_tasks.add(task)
        task.add_done_callback(self._pop_tasks.discard)


def build_client(
    settings: Settings,
    *,
    identity: SessionIdentityProvider | None = None,
    navigator: HistoryNavigator | None = None,
    local_store: SqlLocalStore | None = None,
    service: CardService | None = None,
    clock: Clock | None = None,
    scheduler: Scheduler | None = None,
) -> CardSyncClient:
    """Wire a client from settings; any collaborator may be injected instead."""
    identity = identity or SessionIdentityProvider()
    navigator = navigator or HistoryNavigator()
    local_store = local_store or SqlLocalStore.from_url(settings.local_store_url)
    service = service or HttpCardService(
        settings.api_base_url, identity, timeout_seconds=settings.api_timeout_seconds,
    )
    clock = clock or SystemClock()
    scheduler = scheduler or LoopScheduler()

    store = EntityStore()
    cache = CacheManager(
        local_store,
        clock,
        key_prefix=settings.cache_key_prefix,
        default_ttl=settings.cache_default_ttl_seconds,
        max_memory_entries=settings.cache_max_memory_entries,
        version_quantum=settings.cache_version_quantum_seconds,
    )
    engine = SyncEngine(
        store, service, cache, LocalCardArchive(local_store), clock, scheduler,
        debounce_seconds=settings.save_debounce_ms / 1000,
    )
    retry_policy = RetryPolicy(
        max_retries=settings.resolution_max_retries,
        backoff=exponential_backoff(
            settings.resolution_base_delay_ms / 1000,
            settings.resolution_max_delay_ms / 1000,
        ),
    )
    resolver = ResolutionPipeline(
        store, cache, service, identity, navigator, retry_policy,
        cache_ttl=settings.resolution_cache_ttl_seconds,
    )
    return CardSyncClient(
        identity=identity,
        navigator=navigator,
        local_store=local_store,
        service=service,
        store=store,
        cache=cache,
        engine=engine,
        resolver=resolver,
        migrator=LegacyUrlMigrator(identity, navigator),
    )
