"""Local Card Archive — cards kept in the durable local store when the service is unreachable.

Invariants:
    - One JSON document under ARCHIVE_KEY holding a list of wire-format cards
    - put() replaces by id or prepends; remove() of a missing id is a no-op
    - Corrupt or partially invalid documents never raise: unreadable records are dropped
    - LocalStoreError propagates; the sync engine decides how to degrade

Design Decisions:
    - Single document over key-per-card: load_all() is one read, and the archive is
      only consulted on startup fallback and soft-failed saves
"""

import json
import logging

from pydantic import ValidationError

from cardsync.core.repository_protocols import LocalStore
from cardsync.schemas.card import Card

logger = logging.getLogger(__name__)

ARCHIVE_KEY = "cardsync_cards_v1"


class LocalCardArchive:
    def __init__(self, store: LocalStore, key: str = ARCHIVE_KEY):
        self._store = store
        self._key = key

    async def load_all(self) -> list[Card]:
        raw = await self._store.get(self._key)
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Local card archive is corrupt, ignoring it")
            return []
        if not isinstance(records, list):
            return []
        cards: list[Card] = []
        for record in records:
            try:
                cards.append(Card.from_wire(record))
            except ValidationError:
                logger.warning("Dropping unreadable card from local archive")
        return cards

    async def put(self, card: Card) -> None:
        cards = await self.load_all()
        if any(c.id == card.id for c in cards):
            # keep list position for an update
            cards = [card if c.id == card.id else c for c in cards]
        else:
            cards.insert(0, card)
        await self._save(cards)

    async def get(self, card_id: str) -> Card | None:
        for card in await self.load_all():
            if card.id == card_id:
                return card
        return None

    async def remove(self, card_id: str) -> None:
        cards = await self.load_all()
        remaining = [c for c in cards if c.id != card_id]
        if len(remaining) != len(cards):
            await self._save(remaining)

    async def _save(self, cards: list[Card]) -> None:
        await self._store.set(
            self._key, json.dumps([c.to_wire() for c in cards], ensure_ascii=False),
        )
