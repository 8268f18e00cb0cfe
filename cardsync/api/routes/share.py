"""Share Links — public resolution of canonical and legacy share tokens.

Invariants:
    - Resolution runs for an anonymous viewer: only published cards are returned
    - NOT_FOUND → 404 error envelope; UNAVAILABLE (retries exhausted) → 503
    - The legacy ?shareId= form answers with the canonical path so callers can
      rewrite their address

Design Decisions:
    - Pipeline taken from app.state via a dependency: tests swap in a client wired
      with fakes without touching module globals
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from cardsync.core.domain_types import ResolutionOutcome
from cardsync.core.errors import ErrorContext, NetworkFailure, NotFound
from cardsync.schemas.share import ShareResolutionResponse
from cardsync.services.resolution import Resolution, ResolutionPipeline

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/share", tags=["share"])


def get_resolver(request: Request) -> ResolutionPipeline:
    return request.app.state.client.resolver


@router.get("", response_model=ShareResolutionResponse)
async def resolve_legacy_share(
    share_id: str = Query(..., alias="shareId", min_length=1),
    resolver: ResolutionPipeline = Depends(get_resolver),
):
    """Deprecated /?shareId=<token> form."""
    return _to_response(await resolver.resolve(share_id, legacy=True))


@router.get("/{token}", response_model=ShareResolutionResponse)
async def resolve_share(
    token: str, resolver: ResolutionPipeline = Depends(get_resolver),
):
    return _to_response(await resolver.resolve(token))


def _to_response(resolution: Resolution) -> ShareResolutionResponse:
    context = ErrorContext(operation="resolve_share")
    if resolution.outcome is ResolutionOutcome.UNAVAILABLE:
        raise NetworkFailure("Card service unavailable, try again later", context)
    if not resolution.found:
        raise NotFound("Card", resolution.token, context)
    return ShareResolutionResponse(
        card=resolution.card.to_wire(),
        canonical_path=resolution.canonical_path,
        source=resolution.source,
    )
