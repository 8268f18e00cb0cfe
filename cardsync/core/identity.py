"""Identity & Scope Slugs — deterministic, path-safe scope derived from the identity handle.

Invariants:
    - scope_slug is a pure function of the handle: same handle -> same slug, always
    - Output contains only [a-z0-9-], no leading/trailing or doubled separators
    - An email-shaped handle contributes only its local part ("elena.castillo@x.com" -> "elena-castillo")
    - Handles that normalize to nothing have no scope (None), never an empty path segment

Design Decisions:
    - Identity is a frozen dataclass: the identity collaborator hands out snapshots,
      so ownership checks never observe a half-updated session
"""

import re
from dataclasses import dataclass

from cardsync.core.domain_types import ScopeSlug, UserId

SCOPE_SEPARATOR = "-"

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_REPEATED_SEPARATOR = re.compile(f"{SCOPE_SEPARATOR}{{2,}}")


def scope_slug(handle: str | None) -> ScopeSlug | None:
    """Derive the scope slug for a handle, or None if nothing path-safe remains."""
    if not handle:
        return None
    local_part = handle.split("@", 1)[0]
    slug = _NON_ALNUM.sub(SCOPE_SEPARATOR, local_part.lower())
    slug = _REPEATED_SEPARATOR.sub(SCOPE_SEPARATOR, slug).strip(SCOPE_SEPARATOR)
    return ScopeSlug(slug) if slug else None


@dataclass(frozen=True)
class Identity:
    """Authenticated viewer as supplied by the identity collaborator."""
    user_id: UserId
    handle: str
    session_token: str | None = None

    @property
    def scope(self) -> ScopeSlug | None:
        return scope_slug(self.handle)

    def owns(self, owner_id: str | None) -> bool:
        return owner_id is not None and owner_id == self.user_id
