"""Synchronization Engine — optimistic local writes, debounced persistence, reconciliation.

Invariants:
    - save() applies the card to the Entity Store before any await (read-your-writes)
    - One pending slot per card: debounced saves inside the window overwrite it (last write wins)
    - At most one in-flight persistence call per card; a save arriving meanwhile waits in
      the pending slot and fires as soon as the in-flight call completes
    - An immediate save cancels the not-yet-fired timer; it never aborts an in-flight call
    - New/temporary cards take the create path, others the update path; an update that
      reports NotFound falls back to create exactly once. AuthFailure never does
    - Persistence failures never escape save()/create(): the card stays local and dirty,
      the failure is logged and the card is written to the local archive. publish() is
      the one operation that raises
    - The engine never retries on its own
    - A response for a deleted card is discarded; a create that lands after its card was
      deleted is deleted remotely (orphan cleanup)

Design Decisions:
    - Per-card _Slot (pending card, waiters, in-flight task, timer, status) instead of a
      global queue: unrelated cards never wait on each other
    - A transient id is aliased to its authoritative id after the first create, so callers
      holding the old Card object keep addressing the same logical card
    - Unchanged payloads (same sync fingerprint as the last confirmed record) skip the
      network call, so back-to-back immediate saves produce one mutation
    - Waiters receive (card, error) so publish() can surface the failure while save() stays silent
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from cardsync.core.classify_token import card_id_cache_key, card_slug_cache_key
from cardsync.core.domain_types import SaveStatus
from cardsync.core.errors import CardSyncError, LocalStoreError, NotFound
from cardsync.core.repository_protocols import CardService, Clock, Scheduler
from cardsync.infrastructure.scheduler import DebouncedTask
from cardsync.schemas.card import Card, new_transient_card
from cardsync.services.cache_manager import CacheManager
from cardsync.services.entity_store import EntityStore
from cardsync.services.local_archive import LocalCardArchive

logger = logging.getLogger(__name__)

SaveResult = tuple[Card, CardSyncError | None]


@dataclass(eq=False)
class _Slot:
    card_id: str
    timer: DebouncedTask | None = None
    pending: Card | None = None
    waiters: list[asyncio.Future] = field(default_factory=list)
    in_flight: asyncio.Task | None = None
    status: SaveStatus = SaveStatus.CLEAN
    deleted: bool = False
    last_synced: dict[str, Any] | None = None
    last_error: CardSyncError | None = None


class SyncEngine:
    """Coordinates Entity Store mutations with the remote card service."""

    def __init__(
        self,
        store: EntityStore,
        service: CardService,
        cache: CacheManager,
        archive: LocalCardArchive,
        clock: Clock,
        scheduler: Scheduler,
        *,
        debounce_seconds: float = 0.8,
    ):
        self._store = store
        self._service = service
        self._cache = cache
        self._archive = archive
        self._clock = clock
        self._scheduler = scheduler
        self._debounce = debounce_seconds
        self._slots: dict[str, _Slot] = {}
        self._aliases: dict[str, str] = {}
        self._listeners: list[Callable[[], None]] = []
        self._last_save_time: float | None = None
        # in-flight calls of deleted cards, still awaited by wait_idle()
        self._detached: set[asyncio.Task] = set()

    # ─── Exposed state ──────────────────────────────────────────

    @property
    def is_saving(self) -> bool:
        return any(slot.in_flight is not None for slot in self._slots.values())

    @property
    def last_save_time(self) -> float | None:
        """Clock time of the last confirmed persistence, None until one succeeds."""
        return self._last_save_time

    def status_of(self, card_id: str) -> SaveStatus:
        slot = self._slots.get(self._canonical_id(card_id))
        return slot.status if slot else SaveStatus.CLEAN

    def last_error_for(self, card_id: str) -> CardSyncError | None:
        slot = self._slots.get(self._canonical_id(card_id))
        return slot.last_error if slot else None

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # ─── Operations ─────────────────────────────────────────────

    async def fetch_all(self) -> list[Card]:
        """Load the owner's cards; fall back to the local archive when the service fails.

        Cards with an unconfirmed local edit (pending, in flight or failed) keep
        their local state over the fetched copy.
        """
        archived = await self._load_archive()
        try:
            remote = await self._service.fetch_all()
        except CardSyncError as e:
            logger.warning(
                f"Card list unavailable, using local archive: {e.message}",
                extra={"error_code": e.code, "operation": "fetch_all"},
            )
            current = self._store.all()
            missing = [c for c in archived if c.id not in self._store]
            self._store.reset(current + missing)
            return self._store.all()

        for card in remote:
            self._slot_for(card.id).last_synced = card.sync_fingerprint()
        known = {card.id for card in remote}
        unsynced = [c for c in archived if c.needs_create and c.id not in known]
        self._store.reset(self._keep_local_edits(remote + unsynced))
        logger.info(
            f"Loaded {len(remote)} cards ({len(unsynced)} unsynced local)",
            extra={"operation": "fetch_all"},
        )
        return self._store.all()

    async def create(
        self, owner_id: str | None = None, content: dict[str, Any] | None = None,
    ) -> Card:
        """Insert a transient card and persist it right away. Never raises on service failure."""
        card = new_transient_card(owner_id=owner_id, content=content)
        return await self.save(card, immediate=True)

    async def save(self, card: Card, immediate: bool = False) -> Card:
        card = self._adopt_identity(card)
        self._store.upsert(card)
        slot = self._slot_for(card.id)
        slot.pending = card
        if slot.in_flight is None:
            slot.status = SaveStatus.DIRTY
        self._notify()

        if not immediate:
            slot.timer.arm()
            return card
        saved, _ = await self._save_now(slot)
        return saved

    async def publish(self, card: Card) -> Card:
        """Mark published and await the authoritative record (slug, public URL)."""
        card = self._adopt_identity(card).published()
        self._store.upsert(card)
        slot = self._slot_for(card.id)
        slot.pending = card
        if slot.in_flight is None:
            slot.status = SaveStatus.DIRTY
        self._notify()
        saved, error = await self._save_now(slot)
        if error is not None:
            raise error
        return saved

    async def delete(self, card_id: str) -> None:
        card_id = self._canonical_id(card_id)
        card = self._store.get(card_id)
        slot = self._slots.pop(card_id, None)
        if slot is not None:
            slot.deleted = True
            slot.timer.cancel()
            slot.pending = None
            _settle(slot.waiters, (card, None))
            slot.waiters = []
            slot.status = SaveStatus.CLEAN
            if slot.in_flight is not None:
                self._detached.add(slot.in_flight)
                slot.in_flight.add_done_callback(self._detached.discard)
        self._store.remove(card_id)
        self._notify()

        # never reached the service; an in-flight create is cleaned up on arrival
        if card is None or not card.needs_create:
            try:
                await self._service.delete(card_id)
            except NotFound:
                pass
            except CardSyncError as e:
                logger.warning(
                    f"Remote delete failed: {e.message}",
                    extra={"card_id": card_id, "error_code": e.code, "operation": "delete"},
                )
        await self._forget_archived(card_id)
        await self._invalidate(card_id, card.slug if card else None)
        logger.info(f"Card {card_id} deleted", extra={"card_id": card_id})

    # ─── Lifecycle ──────────────────────────────────────────────

    async def flush(self) -> None:
        """Fire every armed debounce timer now and wait for the resulting calls."""
        for slot in list(self._slots.values()):
            if slot.timer.is_armed:
                slot.timer.cancel()
                self._kick(slot)
        await self.wait_idle()

    async def wait_idle(self) -> None:
        while True:
            tasks = [s.in_flight for s in self._slots.values() if s.in_flight is not None]
            tasks.extend(self._detached)
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def aclose(self) -> None:
        await self.flush()
        for slot in self._slots.values():
            slot.timer.cancel()
        self._listeners.clear()

    # ─── Scheduling ─────────────────────────────────────────────

    def _slot_for(self, card_id: str) -> _Slot:
        slot = self._slots.get(card_id)
        if slot is None:
            slot = _Slot(card_id=card_id)
            slot.timer = DebouncedTask(
                self._scheduler, self._debounce, lambda: self._kick(slot),
            )
            self._slots[card_id] = slot
        return slot

    async def _save_now(self, slot: _Slot) -> SaveResult:
        slot.timer.cancel()
        waiter = asyncio.get_running_loop().create_future()
        slot.waiters.append(waiter)
        self._kick(slot)
        return await waiter

    def _kick(self, slot: _Slot) -> None:
        if slot.deleted or slot.in_flight is not None or slot.pending is None:
            return
        slot.in_flight = asyncio.create_task(self._run(slot))

    async def _run(self, slot: _Slot) -> None:
        card, waiters = slot.pending, slot.waiters
        slot.pending, slot.waiters = None, []
        slot.status = SaveStatus.SAVING
        self._notify()
        try:
            result = await self._sync(slot, card)
        except Exception as e:
            logger.error(
                f"Unexpected error while saving {card.id}: {e}",
                extra={"card_id": card.id}, exc_info=True,
            )
            slot.status = SaveStatus.DIRTY
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_exception(e)
            raise
        finally:
            slot.in_flight = None

        _settle(waiters, result)
        if slot.deleted:
            return
        if slot.pending is not None:
            # trailing edge: the latest local state goes out now
            slot.timer.cancel()
            slot.status = SaveStatus.DIRTY
            self._kick(slot)
        else:
            slot.status = SaveStatus.DIRTY if result[1] else SaveStatus.CLEAN
        self._notify()

    # ─── Persistence ────────────────────────────────────────────

    async def _sync(self, slot: _Slot, card: Card) -> SaveResult:
        if not card.needs_create and card.sync_fingerprint() == slot.last_synced:
            logger.debug("Unchanged card, skipping save", extra={"card_id": card.id})
            return self._store.get(card.id) or card, None

        try:
            saved = await self._persist(card)
        except CardSyncError as e:
            slot.last_error = e
            if slot.deleted:
                return card, None
            logger.warning(
                f"Save failed, keeping card local: {e.message}",
                extra={"card_id": card.id, "error_code": e.code, "operation": "save"},
            )
            await self._archive_card(card)
            return self._store.get(card.id) or card, e

        if slot.deleted:
            if card.needs_create or saved.id != card.id:
                await self._delete_orphan(saved.id)
            return saved, None

        saved = self._reconcile(slot, card, saved)
        slot.last_synced = saved.sync_fingerprint()
        slot.last_error = None
        self._last_save_time = self._clock.now()
        await self._forget_archived(card.id)
        await self._invalidate(saved.id, saved.slug)
        logger.info(f"Card {saved.id} saved", extra={"card_id": saved.id})
        return saved, None

    async def _persist(self, card: Card) -> Card:
        if card.needs_create:
            return await self._service.create(card)
        try:
            return await self._service.update(card.id, card)
        except NotFound:
            logger.warning(
                "Card unknown to the service, creating it instead",
                extra={"card_id": card.id, "operation": "update"},
            )
            return await self._service.create(card.as_new())

    def _reconcile(self, slot: _Slot, sent: Card, saved: Card) -> Card:
        """Put the authoritative record in the store, keeping any newer local edit."""
        if saved.id != sent.id:
            self._aliases[sent.id] = saved.id
            self._slots.pop(sent.id, None)
            self._slots[saved.id] = slot
            slot.card_id = saved.id

        if slot.pending is not None:
            slot.pending = slot.pending.with_identity(saved)
            visible = slot.pending
        else:
            visible = saved
        if not self._store.replace(sent.id, visible):
            self._store.upsert(visible)
        return saved

    def _keep_local_edits(self, cards: list[Card]) -> list[Card]:
        merged = {card.id: card for card in cards}
        for card in self._store.all():
            slot = self._slots.get(card.id)
            if slot is not None and _unconfirmed(slot):
                merged[card.id] = card
        return list(merged.values())

    def _adopt_identity(self, card: Card) -> Card:
        """Rewrite a card still carrying a retired transient id onto its authoritative record."""
        card_id = self._canonical_id(card.id)
        if card_id == card.id:
            return card
        current = self._store.get(card_id)
        if current is None:
            return card.model_copy(update={"id": card_id, "is_temporary": False, "is_new": False})
        return card.with_identity(current)

    def _canonical_id(self, card_id: str) -> str:
        while card_id in self._aliases:
            card_id = self._aliases[card_id]
        return card_id

    # ─── Best-effort side effects ───────────────────────────────

    async def _delete_orphan(self, card_id: str) -> None:
        logger.info(
            f"Deleting card {card_id} created after local delete",
            extra={"card_id": card_id, "operation": "delete"},
        )
        try:
            await self._service.delete(card_id)
        except CardSyncError as e:
            logger.warning(
                f"Orphan cleanup failed: {e.message}",
                extra={"card_id": card_id, "error_code": e.code},
            )

    async def _invalidate(self, card_id: str, slug: str | None) -> None:
        await self._cache.delete(card_id_cache_key(card_id))
        if slug:
            await self._cache.delete(card_slug_cache_key(slug))
        await self._cache.invalidate_pattern(rf"^stats:{re.escape(card_id)}(:|$)")

    async def _load_archive(self) -> list[Card]:
        try:
            return await self._archive.load_all()
        except LocalStoreError as e:
            logger.warning(f"Local archive unreadable: {e.message}")
            return []

    async def _archive_card(self, card: Card) -> None:
        try:
            await self._archive.put(card)
        except LocalStoreError as e:
            logger.warning(
                f"Local archive write failed: {e.message}", extra={"card_id": card.id},
            )

    async def _forget_archived(self, card_id: str) -> None:
        try:
            await self._archive.remove(card_id)
        except LocalStoreError as e:
            logger.warning(
                f"Local archive cleanup failed: {e.message}", extra={"card_id": card_id},
            )

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Sync engine listener failed")


def _unconfirmed(slot: _Slot) -> bool:
    return (
        slot.pending is not None
        or slot.in_flight is not None
        or slot.status is not SaveStatus.CLEAN
    )


def _settle(waiters: list[asyncio.Future], result: SaveResult) -> None:
    for waiter in waiters:
        if not waiter.done():
            waiter.set_result(result)
