"""Share Schemas — gateway response for a resolved share link."""

from typing import Any

from pydantic import BaseModel

from cardsync.core.domain_types import ResolutionSource


class ShareResolutionResponse(BaseModel):
    card: dict[str, Any]
    canonical_path: str
    source: ResolutionSource
