"""History Navigator — in-process address history with push/replace/back/forward.

Invariants:
    - push() drops forward entries and appends; replace() overwrites the current entry
    - replace() never changes the history length (no new entry for back() to land on)
    - back()/forward() at either end are no-ops and notify nobody
    - Listeners fire only for back()/forward() (pop navigation); push/replace are
      initiated by the caller, which already knows the new location

Design Decisions:
    - Mirrors browser history semantics (pushState/replaceState/popstate) so the
      legacy rewrite and back-button behavior are testable without a browser
"""

from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlsplit


@dataclass(frozen=True)
class HistoryLocation:
    path: str
    query: str = ""

    @classmethod
    def parse(cls, url: str) -> "HistoryLocation":
        parts = urlsplit(url)
        return cls(path=parts.path or "/", query=parts.query)

    @property
    def url(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path


class HistoryNavigator:
    """Navigator over an in-memory history stack."""

    def __init__(self, initial_url: str = "/"):
        self._entries: list[HistoryLocation] = [HistoryLocation.parse(initial_url)]
        self._index = 0
        self._listeners: list[Callable[[HistoryLocation], None]] = []

    @property
    def length(self) -> int:
        return len(self._entries)

    def entries(self) -> list[str]:
        return [e.url for e in self._entries]

    def current(self) -> HistoryLocation:
        return self._entries[self._index]

    def push(self, url: str) -> None:
        del self._entries[self._index + 1:]
        self._entries.append(HistoryLocation.parse(url))
        self._index += 1

    def replace(self, url: str) -> None:
        self._entries[self._index] = HistoryLocation.parse(url)

    def back(self) -> None:
        if self._index > 0:
            self._index -= 1
            self._notify()

    def forward(self) -> None:
        if self._index < len(self._entries) - 1:
            self._index += 1
            self._notify()

    def subscribe(self, listener: Callable[[HistoryLocation], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        location = self.current()
        for listener in list(self._listeners):
            listener(location)
