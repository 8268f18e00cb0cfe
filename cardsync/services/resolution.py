"""Resolution Pipeline — share token -> card, through Entity Store, cache, then the service.

Invariants:
    - Tiers are consulted in order: Entity Store, Cache Manager, remote public lookup
    - A token resolvable from the Entity Store makes zero service calls
    - Public results must be published: an unpublished remote record is NOT_FOUND even
      though the fetch succeeded. Local and cached cards also pass the gate unless the
      viewer owns them
    - Only retryable failures (NetworkFailure) are retried, up to policy.max_retries times
      with the policy's backoff; NotFound / AuthFailure / ValidationFailure end at once
    - Exhausted retries yield UNAVAILABLE, terminal failures NOT_FOUND: no exception
      reaches the caller
    - A card resolved from the service is cached under its id and slug keys; the owner
      also gets it in the Entity Store
    - A legacy inbound address is rewritten with navigator.replace(), never push()

Design Decisions:
    - Result value (Resolution) over exceptions: not-found is a normal outcome the
      caller renders
    - sleep is injected: tests record backoff delays instead of waiting for them
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from pydantic import ValidationError

from cardsync.core.classify_token import (
    ById,
    LookupStrategy,
    card_id_cache_key,
    card_slug_cache_key,
    classify_token,
)
from cardsync.core.domain_types import ResolutionOutcome, ResolutionSource
from cardsync.core.errors import CardSyncError
from cardsync.core.identity import Identity
from cardsync.core.repository_protocols import CardService, IdentityProvider, Navigator
from cardsync.core.retry_policy import RetryPolicy
from cardsync.core.share_address import canonical_share_path, parse_share_address
from cardsync.schemas.card import Card
from cardsync.services.cache_manager import CacheManager
from cardsync.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class Resolution:
    outcome: ResolutionOutcome
    token: str
    card: Card | None = None
    source: ResolutionSource | None = None
    canonical_path: str | None = None

    @property
    def found(self) -> bool:
        return self.outcome is ResolutionOutcome.FOUND


class ResolutionPipeline:
    """Cascading, retry-aware lookup of shared cards."""

    def __init__(
        self,
        store: EntityStore,
        cache: CacheManager,
        service: CardService,
        identity: IdentityProvider,
        navigator: Navigator | None = None,
        retry_policy: RetryPolicy | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        cache_ttl: float = 300.0,
    ):
        self._store = store
        self._cache = cache
        self._service = service
        self._identity = identity
        self._navigator = navigator
        self._policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._cache_ttl = cache_ttl

    async def resolve_address(self, path: str, query: str = "") -> Resolution | None:
        """Resolve the share link in an address; None if the address is not a share link."""
        address = parse_share_address(path, query)
        if address is None:
            return None
        return await self.resolve(address.token, legacy=address.legacy)

    async def resolve(self, token: str, legacy: bool = False) -> Resolution:
        try:
            strategy = classify_token(token)
        except ValueError:
            return Resolution(ResolutionOutcome.NOT_FOUND, token)
        viewer = self._identity.current()

        card = self._check_local(strategy, viewer)
        if card is not None:
            return self._found(strategy, card, ResolutionSource.LOCAL, legacy)

        card = await self._check_cache(strategy, viewer)
        if card is not None:
            return self._found(strategy, card, ResolutionSource.CACHE, legacy)

        outcome, card = await self._fetch_with_retry(strategy)
        if card is None:
            return Resolution(outcome, strategy.token)
        await self._remember(card, viewer)
        return self._found(strategy, card, ResolutionSource.REMOTE, legacy)

    # ─── Tiers ──────────────────────────────────────────────────

    def _check_local(self, strategy: LookupStrategy, viewer: Identity | None) -> Card | None:
        card = self._store.find(strategy.token)
        if card is None or not _visible_to(card, viewer):
            return None
        return card

    async def _check_cache(self, strategy: LookupStrategy, viewer: Identity | None) -> Card | None:
        payload = await self._cache.get(strategy.cache_key)
        if payload is None:
            return None
        try:
            card = Card.from_wire(payload)
        except ValidationError:
            logger.warning(
                "Discarding unreadable cached card", extra={"cache_key": strategy.cache_key},
            )
            await self._cache.delete(strategy.cache_key)
            return None
        return card if _visible_to(card, viewer) else None

    async def _fetch_with_retry(
        self, strategy: LookupStrategy,
    ) -> tuple[ResolutionOutcome, Card | None]:
        attempt = 0
        while True:
            try:
                card = await self._fetch_remote(strategy)
                break
            except CardSyncError as e:
                if self._policy.should_retry(e, attempt):
                    delay = self._policy.delay_for(attempt)
                    logger.info(
                        f"Lookup of {strategy.token} failed, retrying in {delay:.2f}s",
                        extra={"attempt": attempt + 1, "delay_ms": int(delay * 1000)},
                    )
                    await self._sleep(delay)
                    attempt += 1
                    continue
                if e.retryable:
                    logger.warning(
                        f"Lookup of {strategy.token} unavailable after {attempt + 1} attempts",
                        extra={"attempt": attempt + 1, "error_code": e.code},
                    )
                    return ResolutionOutcome.UNAVAILABLE, None
                logger.info(
                    f"Lookup of {strategy.token} ended: {e.code}",
                    extra={"error_code": e.code},
                )
                return ResolutionOutcome.NOT_FOUND, None

        if not card.is_published:
            logger.info(f"Card {card.id} is not published", extra={"card_id": card.id})
            return ResolutionOutcome.NOT_FOUND, None
        return ResolutionOutcome.FOUND, card

    async def _fetch_remote(self, strategy: LookupStrategy) -> Card:
        if isinstance(strategy, ById):
            return await self._service.fetch_public_by_id(strategy.card_id)
        return await self._service.fetch_public_by_slug(strategy.slug)

    # ─── Side effects ───────────────────────────────────────────

    async def _remember(self, card: Card, viewer: Identity | None) -> None:
        payload = card.to_wire()
        await self._cache.set(card_id_cache_key(card.id), payload, self._cache_ttl)
        if card.slug:
            await self._cache.set(card_slug_cache_key(card.slug), payload, self._cache_ttl)
        if viewer is not None and viewer.owns(card.owner_id) and card.id not in self._store:
            self._store.upsert(card)

    def _found(
        self, strategy: LookupStrategy, card: Card, source: ResolutionSource, legacy: bool,
    ) -> Resolution:
        canonical = canonical_share_path(card.id, card.slug)
        if legacy and self._navigator is not None:
            self._navigator.replace(canonical)
            logger.info(
                f"Rewrote legacy share address to {canonical}", extra={"path": canonical},
            )
        logger.debug(
            f"Resolved {strategy.token} from {source.value}",
            extra={"card_id": card.id, "source": source.value},
        )
        return Resolution(
            ResolutionOutcome.FOUND, strategy.token, card, source, canonical,
        )


def _visible_to(card: Card, viewer: Identity | None) -> bool:
    return card.is_published or (viewer is not None and viewer.owns(card.owner_id))
