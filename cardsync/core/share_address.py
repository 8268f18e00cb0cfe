"""Share Addresses — recognizes inbound share-link shapes and builds canonical paths.

Invariants:
    - parse_share_address is PURE and never raises on arbitrary input (returns None)
    - Canonical shape: /card/<token>
    - Deprecated shapes: /?shareId=<token> (legacy query form) and /u/<slug>
    - canonical_share_path prefers the card's slug and falls back to its id

Design Decisions:
    - Query string parsed with urllib.parse: percent-decoding and repeated keys
      handled the same way the browser's URLSearchParams does (first value wins)
"""

from dataclasses import dataclass
from urllib.parse import parse_qs, quote, unquote

CANONICAL_PREFIX = "/card/"
LEGACY_PROFILE_PREFIX = "/u/"
LEGACY_QUERY_PARAM = "shareId"


@dataclass(frozen=True)
class ShareAddress:
    """A share token extracted from an inbound address."""
    token: str
    legacy: bool


def parse_share_address(path: str, query: str = "") -> ShareAddress | None:
    """Extract the share token from path + query, or None if not a share link."""
    params = parse_qs(query.lstrip("?"), keep_blank_values=False)
    share_ids = params.get(LEGACY_QUERY_PARAM)
    if share_ids and share_ids[0].strip():
        return ShareAddress(token=share_ids[0].strip(), legacy=True)

    for prefix, legacy in (
        (CANONICAL_PREFIX, False), (LEGACY_PROFILE_PREFIX, True),
    ):
        if path.startswith(prefix):
            token = path[len(prefix):].strip("/")
            if token and "/" not in token:
                return ShareAddress(token=unquote(token), legacy=legacy)
    return None


def canonical_share_path(card_id: str, slug: str | None = None) -> str:
    """Canonical address for a card: /card/<slug> when it has one, else /card/<id>."""
    return f"{CANONICAL_PREFIX}{quote(slug or card_id, safe='')}"
