"""Cards API Client — verifies request shapes and status → error mapping.

Tests:
    - Authenticated calls carry the bearer token; public lookups carry none
    - Wire payloads are camelCase and never claim to be temporary
    - 404/401/422/5xx and transport errors map to the typed hierarchy
    - Malformed success bodies are NetworkFailure
"""

import json

import httpx
import pytest

from cardsync.core.errors import AuthFailure, NetworkFailure, NotFound, ValidationFailure
from cardsync.infrastructure.cards_api import HttpCardService
from cardsync.schemas.card import Card, new_transient_card

BASE_URL = "http://cards.test/api"


def _service(handler, identity=None) -> HttpCardService:
    return HttpCardService(BASE_URL, identity, transport=httpx.MockTransport(handler))


async def test_create_posts_camel_case_with_bearer_token(identity):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"card": {"id": "srv-1", "ownerId": "user-1"}})

    service = _service(handler, identity)
    card = await service.create(new_transient_card(owner_id="user-1", content={"title": "x"}))
    await service.aclose()

    assert (seen["method"], seen["path"]) == ("POST", "/api/cards")
    assert seen["auth"] == "Bearer tok-1"
    assert seen["body"]["ownerId"] == "user-1"
    assert seen["body"]["isTemporary"] is False
    assert card.id == "srv-1"
    assert not card.needs_create


async def test_update_puts_to_card_path(identity):
    def handler(request: httpx.Request) -> httpx.Response:
        assert (request.method, request.url.path) == ("PUT", "/api/cards/c1")
        return httpx.Response(200, json=json.loads(request.content))

    service = _service(handler, identity)
    saved = await service.update("c1", Card(id="c1", content={"title": "new"}))
    assert saved.content == {"title": "new"}


async def test_public_lookups_send_no_credentials(identity):
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Authorization" not in request.headers
        if request.url.path == "/api/cards/slug/launch":
            return httpx.Response(200, json={"id": "c2", "slug": "launch", "isPublished": True})
        return httpx.Response(200, json={"id": "c1", "isPublished": True})

    service = _service(handler, identity)
    assert (await service.fetch_public_by_id("c1")).id == "c1"
    assert (await service.fetch_public_by_slug("launch")).slug == "launch"


async def test_path_segments_are_percent_encoded():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.raw_path, request.url.query))
        return httpx.Response(200, json={"id": "c1", "slug": "a?b", "isPublished": True})

    service = _service(handler)
    await service.fetch_public_by_slug("a?b")
    await service.fetch_public_by_id("x/y")

    assert seen == [
        (b"/api/cards/slug/a%3Fb", b""),
        (b"/api/cards/x%2Fy/public", b""),
    ]


async def test_fetch_all_accepts_list_and_envelope():
    payloads = iter([
        [{"id": "a"}, {"id": "b"}],
        {"cards": [{"id": "c"}]},
    ])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=next(payloads))

    service = _service(handler)
    assert [c.id for c in await service.fetch_all()] == ["a", "b"]
    assert [c.id for c in await service.fetch_all()] == ["c"]


async def test_delete_accepts_empty_response():
    service = _service(lambda request: httpx.Response(204))
    assert await service.delete("c1") is None


@pytest.mark.parametrize("status, error_type", [
    (404, NotFound),
    (401, AuthFailure),
    (403, AuthFailure),
    (400, ValidationFailure),
    (422, ValidationFailure),
    (429, NetworkFailure),
    (500, NetworkFailure),
    (503, NetworkFailure),
    (418, ValidationFailure),
])
async def test_status_mapping(status, error_type):
    service = _service(
        lambda request: httpx.Response(status, json={"error": {"message": "nope"}}),
    )
    with pytest.raises(error_type) as exc_info:
        await service.update("c1", Card(id="c1"))
    assert exc_info.value.context.status_code == status


async def test_not_found_carries_card_id():
    service = _service(lambda request: httpx.Response(404))
    with pytest.raises(NotFound) as exc_info:
        await service.fetch_public_by_id("c9")
    assert exc_info.value.resource_id == "c9"


async def test_transport_errors_are_network_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    service = _service(handler)
    with pytest.raises(NetworkFailure):
        await service.fetch_all()


async def test_timeouts_are_network_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(NetworkFailure):
        await _service(handler).fetch_public_by_id("c1")


async def test_malformed_success_bodies_are_network_failures():
    service = _service(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(NetworkFailure):
        await service.fetch_public_by_id("c1")

    service = _service(lambda request: httpx.Response(200, json={"title": "no id"}))
    with pytest.raises(NetworkFailure):
        await service.fetch_public_by_id("c1")
