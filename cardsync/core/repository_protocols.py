"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol only where implementations suspend (service calls, durable IO);
      clock, scheduler and navigator are synchronous by contract
"""

from typing import TYPE_CHECKING, Callable, Protocol

from cardsync.core.identity import Identity

if TYPE_CHECKING:
    from cardsync.schemas.card import Card


class CardService(Protocol):
    """Contract for the remote persistence service.

    Failures raise core/errors.py types: NotFound, AuthFailure,
    ValidationFailure, NetworkFailure.
    """
    async def create(self, card: "Card") -> "Card": ...
    async def update(self, card_id: str, card: "Card") -> "Card": ...
    async def delete(self, card_id: str) -> None: ...
    async def fetch_all(self) -> list["Card"]: ...
    async def fetch_public_by_id(self, card_id: str) -> "Card": ...
    async def fetch_public_by_slug(self, slug: str) -> "Card": ...


class LocalStore(Protocol):
    """Contract for the durable string key-value store. No TTL semantics.

    Failures raise LocalStoreError.
    """
    async def get(self, key: str) -> str | None: ...
    async def set(self, key: str, value: str) -> None: ...
    async def remove(self, key: str) -> None: ...
    async def keys(self, prefix: str = "") -> list[str]: ...


class Clock(Protocol):
    def now(self) -> float:
        """Current time as epoch seconds."""
        ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class IdentityProvider(Protocol):
    def current(self) -> Identity | None: ...


class Location(Protocol):
    path: str
    query: str


class Navigator(Protocol):
    """Contract for the visible address (browser history or equivalent)."""
    def current(self) -> Location: ...
    def push(self, url: str) -> None: ...
    def replace(self, url: str) -> None: ...
    def back(self) -> None: ...
    def forward(self) -> None: ...
    def subscribe(self, listener: Callable[[Location], None]) -> Callable[[], None]: ...
