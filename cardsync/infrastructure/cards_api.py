"""Cards API Client — httpx adapter for the remote persistence service.

Invariants:
    - Implements core.repository_protocols.CardService
    - Every httpx exception and non-2xx status is mapped into core/errors.py:
        404 -> NotFound; 401/403 -> AuthFailure; 400/409/422 -> ValidationFailure;
        408/429/5xx and transport errors -> NetworkFailure
    - No retries here: the Resolution Pipeline owns retry policy, the sync engine never retries
    - Authenticated calls send "Authorization: Bearer <token>" from the identity provider
    - Public lookups send no credentials
    - Ids and slugs are percent-encoded as single path segments

Design Decisions:
    - Wrapper over raw httpx.AsyncClient: isolates status/exception mapping from services
    - Responses unwrapped from {"card": {...}} or bare records (both shapes seen upstream)
    - Unexpected payloads (non-JSON, schema mismatch) are NetworkFailure: the upstream
      misbehaved, the caller's card was not rejected
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from cardsync.core.errors import (
    AuthFailure,
    CardSyncError,
    ErrorContext,
    NetworkFailure,
    NotFound,
    ValidationFailure,
)
from cardsync.core.repository_protocols import IdentityProvider
from cardsync.schemas.card import Card

logger = logging.getLogger(__name__)

_AUTH_STATUSES = {401, 403}
_VALIDATION_STATUSES = {400, 409, 422}
_TRANSIENT_STATUSES = {408, 425, 429}


class HttpCardService:
    """CardService over the REST cards API."""

    def __init__(
        self,
        base_url: str,
        identity: IdentityProvider | None = None,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._identity = identity
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    # ─── CardService ────────────────────────────────────────────

    async def create(self, card: Card) -> Card:
        payload = card.persisted().to_wire()
        data = await self._request("POST", "/cards", "create", card.id, json=payload)
        return self._parse_card(data, "create", card.id).persisted()

    async def update(self, card_id: str, card: Card) -> Card:
        payload = card.persisted().to_wire()
        data = await self._request(
            "PUT", f"/cards/{_segment(card_id)}", "update", card_id, json=payload,
        )
        return self._parse_card(data, "update", card_id).persisted()

    async def delete(self, card_id: str) -> None:
        await self._request("DELETE", f"/cards/{_segment(card_id)}", "delete", card_id)

    async def fetch_all(self) -> list[Card]:
        data = await self._request("GET", "/cards", "fetch_all", None)
        records = data.get("cards", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise NetworkFailure(
                "Unexpected card list payload",
                ErrorContext(operation="fetch_all"),
            )
        return [self._parse_card(r, "fetch_all", None).persisted() for r in records]

    async def fetch_public_by_id(self, card_id: str) -> Card:
        data = await self._request(
            "GET", f"/cards/{_segment(card_id)}/public", "fetch_public_by_id", card_id,
            authenticated=False,
        )
        return self._parse_card(data, "fetch_public_by_id", card_id)

    async def fetch_public_by_slug(self, slug: str) -> Card:
        data = await self._request(
            "GET", f"/cards/slug/{_segment(slug)}", "fetch_public_by_slug", slug,
            authenticated=False,
        )
        return self._parse_card(data, "fetch_public_by_slug", slug)

    # ─── Transport ──────────────────────────────────────────────

    def _auth_headers(self) -> dict[str, str]:
        identity = self._identity.current() if self._identity else None
        if identity is None or not identity.session_token:
            return {}
        return {"Authorization": f"Bearer {identity.session_token}"}

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        card_id: str | None,
        *,
        json: Any = None,
        authenticated: bool = True,
    ) -> Any:
        context = ErrorContext(card_id=card_id, operation=operation)
        headers = self._auth_headers() if authenticated else {}
        try:
            response = await self.client.request(method, url, json=json, headers=headers)
        except httpx.TimeoutException as e:
            raise NetworkFailure(f"Request timed out: {e}", context)
        except httpx.TransportError as e:
            raise NetworkFailure(f"Connection error: {e}", context)
        except httpx.HTTPError as e:
            logger.error(
                f"Unexpected httpx error on {operation}: {e}", exc_info=True,
            )
            raise NetworkFailure(str(e), context)

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                raise NetworkFailure("Response was not valid JSON", context)

        raise self._map_status(response, card_id, context)

    def _map_status(
        self, response: httpx.Response, card_id: str | None, context: ErrorContext,
    ) -> CardSyncError:
        status = response.status_code
        context.status_code = status
        detail = _error_message(response)
        if status == 404:
            return NotFound("Card", card_id or "", context)
        if status in _AUTH_STATUSES:
            return AuthFailure(detail or "Not authorized", context)
        if status in _VALIDATION_STATUSES:
            return ValidationFailure(detail or "Card rejected by service", context)
        if status in _TRANSIENT_STATUSES or status >= 500:
            return NetworkFailure(f"Service returned {status}", context)
        return ValidationFailure(f"Unexpected status {status}: {detail}", context)

    def _parse_card(self, data: Any, operation: str, card_id: str | None) -> Card:
        try:
            return Card.from_wire(data)
        except ValidationError as e:
            raise NetworkFailure(
                "Service returned an invalid card",
                ErrorContext(
                    card_id=card_id, operation=operation,
                    debug_info={"errors": e.errors(include_url=False)},
                ),
            )


def _error_message(response: httpx.Response) -> str:
    """Best-effort human message from an error body ({"error": ...} or {"message": ...})."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message", ""))
        return str(error or body.get("message", ""))
    return ""


def _segment(value: str) -> str:
    return quote(value, safe="")
