"""Token Classifier — maps an inbound share token to a tagged lookup strategy.

Invariants:
    - classify_token is PURE: no IO, inspects only the token's shape
    - A canonical UUID (any case) is ById; everything else non-empty is BySlug
    - Tokens are stripped of surrounding whitespace and slashes before classification
    - Empty tokens raise ValueError — there is nothing to look up

Design Decisions:
    - Tagged union of frozen dataclasses: callers dispatch with isinstance and the
      cache key lives next to the strategy that owns it
"""

import re
from dataclasses import dataclass

from cardsync.core.domain_types import CardId

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ById:
    """Lookup by the service-assigned identifier."""
    card_id: CardId

    @property
    def token(self) -> str:
        return self.card_id

    @property
    def cache_key(self) -> str:
        return card_id_cache_key(self.card_id)


@dataclass(frozen=True)
class BySlug:
    """Lookup by the human-assigned slug."""
    slug: str

    @property
    def token(self) -> str:
        return self.slug

    @property
    def cache_key(self) -> str:
        return card_slug_cache_key(self.slug)


LookupStrategy = ById | BySlug


def card_id_cache_key(card_id: str) -> str:
    return f"card:id:{card_id}"


def card_slug_cache_key(slug: str) -> str:
    return f"card:slug:{slug}"


def classify_token(token: str) -> LookupStrategy:
    """Classify a raw token as ById or BySlug."""
    cleaned = token.strip().strip("/")
    if not cleaned:
        raise ValueError("share token is empty")
    if _UUID_PATTERN.match(cleaned):
        return ById(CardId(cleaned.lower()))
    return BySlug(cleaned)
