"""Local Card Archive — verifies the durable fallback document.

Tests:
    - put() prepends new cards and replaces existing ones in place
    - remove() drops a card; removing a missing id writes nothing
    - Corrupt documents and unreadable records are tolerated
"""

import json

import pytest

from cardsync.core.errors import LocalStoreError
from cardsync.schemas.card import Card
from cardsync.services.local_archive import ARCHIVE_KEY


async def test_empty_archive(archive):
    assert await archive.load_all() == []
    assert await archive.get("c1") is None


async def test_put_prepends_and_replaces_in_place(archive):
    await archive.put(Card(id="c1", content={"title": "one"}))
    await archive.put(Card(id="c2"))
    await archive.put(Card(id="c1", content={"title": "uno"}))

    cards = await archive.load_all()
    assert [c.id for c in cards] == ["c2", "c1"]
    assert (await archive.get("c1")).content == {"title": "uno"}


async def test_document_is_camel_case_wire_format(archive, local_store):
    await archive.put(Card(id="c1", owner_id="user-1"))
    records = json.loads(local_store.data[ARCHIVE_KEY])
    assert records[0]["ownerId"] == "user-1"


async def test_remove(archive, local_store):
    await archive.put(Card(id="c1"))
    await archive.remove("c1")
    assert await archive.load_all() == []

    local_store.data.pop(ARCHIVE_KEY)
    await archive.remove("c1")
    assert ARCHIVE_KEY not in local_store.data


async def test_corrupt_document_is_ignored(archive, local_store):
    local_store.data[ARCHIVE_KEY] = "{not json"
    assert await archive.load_all() == []

    local_store.data[ARCHIVE_KEY] = json.dumps({"id": "c1"})
    assert await archive.load_all() == []


async def test_unreadable_records_are_dropped(archive, local_store):
    local_store.data[ARCHIVE_KEY] = json.dumps([{"id": "c1"}, {"title": "no id"}, 7])
    assert [c.id for c in await archive.load_all()] == ["c1"]


async def test_store_failures_propagate(archive, local_store):
    local_store.broken = True
    with pytest.raises(LocalStoreError):
        await archive.put(Card(id="c1"))
