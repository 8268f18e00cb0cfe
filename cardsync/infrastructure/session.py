"""Session Identity — the in-process identity provider.

Invariants:
    - current() returns an immutable snapshot (or None when signed out)
    - Listeners fire after every sign-in/sign-out
"""

import logging
from typing import Callable

from cardsync.core.identity import Identity

logger = logging.getLogger(__name__)


class SessionIdentityProvider:
    def __init__(self, identity: Identity | None = None):
        self._identity = identity
        self._listeners: list[Callable[[Identity | None], None]] = []

    def current(self) -> Identity | None:
        return self._identity

    def sign_in(self, identity: Identity) -> None:
        self._identity = identity
        logger.info(f"Signed in as {identity.handle}")
        self._notify()

    def sign_out(self) -> None:
        self._identity = None
        self._notify()

    def subscribe(self, listener: Callable[[Identity | None], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._identity)
            except Exception:
                logger.exception("Identity listener failed")
