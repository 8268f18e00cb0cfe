"""Root conftest — shared fakes wired into the sync core.

Invariants:
    - Every test gets fresh collaborators (no shared process-wide state)
    - Time never passes unless a test advances the manual clock or scheduler
"""

import os

import pytest

# Ensure tests never reach a real service or write a store file in the checkout
os.environ.setdefault("CARDSYNC_API_BASE_URL", "http://cards.test/api")
os.environ.setdefault("CARDSYNC_LOCAL_STORE_URL", "sqlite+aiosqlite:///:memory:")

from cardsync.core.domain_types import UserId  # noqa: E402
from cardsync.core.identity import Identity  # noqa: E402
from cardsync.core.retry_policy import RetryPolicy, linear_backoff  # noqa: E402
from cardsync.infrastructure.navigation import HistoryNavigator  # noqa: E402
from cardsync.infrastructure.session import SessionIdentityProvider  # noqa: E402
from cardsync.services.cache_manager import CacheManager  # noqa: E402
from cardsync.services.entity_store import EntityStore  # noqa: E402
from cardsync.services.local_archive import LocalCardArchive  # noqa: E402
from cardsync.services.resolution import ResolutionPipeline  # noqa: E402
from cardsync.services.sync_engine import SyncEngine  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeCardService, ManualClock, ManualScheduler, MemoryLocalStore, RecordingSleep,
)

VIEWER = Identity(
    user_id=UserId("user-1"), handle="elena.castillo@example.com", session_token="tok-1",
)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def local_store():
    return MemoryLocalStore()


@pytest.fixture
def service():
    return FakeCardService()


@pytest.fixture
def store():
    return EntityStore()


@pytest.fixture
def cache(local_store, clock):
    return CacheManager(local_store, clock)


@pytest.fixture
def archive(local_store):
    return LocalCardArchive(local_store)


@pytest.fixture
def engine(store, service, cache, archive, clock, scheduler):
    return SyncEngine(
        store, service, cache, archive, clock, scheduler, debounce_seconds=0.8,
    )


@pytest.fixture
def identity():
    return SessionIdentityProvider(VIEWER)


@pytest.fixture
def navigator():
    return HistoryNavigator("/home")


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def resolver(store, cache, service, identity, navigator, sleep):
    return ResolutionPipeline(
        store, cache, service, identity, navigator,
        RetryPolicy(max_retries=3, backoff=linear_backoff(1.0)),
        sleep=sleep,
    )
