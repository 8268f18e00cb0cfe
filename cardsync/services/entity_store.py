"""Entity Store — the in-memory, UI-facing list of cards.

Invariants:
    - Sole shared mutable resource; every mutation replaces a whole Card by id
    - At most one card per id; insertion order is preserved (UI list order)
    - replace(old_id, card) keeps the list position, so a transient card swapped for
      its authoritative record stays in the same slot even though its id changed
    - All operations are synchronous: a read right after a write sees the write
    - Listeners are notified after every effective mutation with the full card list

Design Decisions:
    - Plain list + id scan over an index dict: card lists are small (one user's cards)
      and order is part of the contract
    - Cards are frozen pydantic models, so handing out the stored objects is safe
"""

import logging
from typing import Callable

from cardsync.schemas.card import Card

logger = logging.getLogger(__name__)

Listener = Callable[[list[Card]], None]


class EntityStore:
    """Authoritative in-memory card list."""

    def __init__(self, cards: list[Card] | None = None):
        self._cards: list[Card] = list(cards or [])
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, card_id: object) -> bool:
        return self._index_of(str(card_id)) is not None

    def all(self) -> list[Card]:
        return list(self._cards)

    def get(self, card_id: str) -> Card | None:
        idx = self._index_of(card_id)
        return self._cards[idx] if idx is not None else None

    def find_by_slug(self, slug: str) -> Card | None:
        for card in self._cards:
            if card.slug and card.slug == slug:
                return card
        return None

    def find(self, token: str) -> Card | None:
        """Match a share token against ids first, then slugs."""
        return self.get(token) or self.find_by_slug(token)

    # ─── Mutations ──────────────────────────────────────────────

    def upsert(self, card: Card) -> None:
        idx = self._index_of(card.id)
        if idx is None:
            self._cards.append(card)
        else:
            self._cards[idx] = card
        self._notify()

    def replace(self, old_id: str, card: Card) -> bool:
        """Swap the card at old_id's position for `card` (its id may differ).

        Returns False, leaving the store untouched, if old_id is not present.
        """
        idx = self._index_of(old_id)
        if idx is None:
            return False
        duplicate = self._index_of(card.id) if card.id != old_id else None
        self._cards[idx] = card
        if duplicate is not None:
            del self._cards[duplicate]
        self._notify()
        return True

    def remove(self, card_id: str) -> bool:
        idx = self._index_of(card_id)
        if idx is None:
            return False
        del self._cards[idx]
        self._notify()
        return True

    def reset(self, cards: list[Card]) -> None:
        deduped: dict[str, Card] = {}
        for card in cards:
            deduped[card.id] = card
        self._cards = list(deduped.values())
        self._notify()

    # ─── Subscriptions ──────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.all()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Entity store listener failed")

    def _index_of(self, card_id: str) -> int | None:
        for i, card in enumerate(self._cards):
            if card.id == card_id:
                return i
        return None
