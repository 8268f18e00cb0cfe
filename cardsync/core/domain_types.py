"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - CardId wraps the opaque string id — transient ids and service ids share the type
    - ScopeSlug is lowercase [a-z0-9-] only (see core/identity.py)
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (gateway responses, log extras)
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

CardId = NewType("CardId", str)
UserId = NewType("UserId", str)
ScopeSlug = NewType("ScopeSlug", str)


# ─── Enums ───────────────────────────────────────────────────────

class SaveStatus(str, Enum):
    """Per-card save lifecycle: CLEAN -> DIRTY -> SAVING -> CLEAN (or back to DIRTY on failure)."""
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"


class ResolutionSource(str, Enum):
    """Tier that produced a resolved card."""
    LOCAL = "local"
    CACHE = "cache"
    REMOTE = "remote"


class ResolutionOutcome(str, Enum):
    """Terminal result of a share-link resolution."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class NavigationAction(str, Enum):
    """What the router does with a navigation after the ownership check."""
    RENDER = "render"
    REDIRECT = "redirect"
