"""Legacy URL Migrator — applies route guard decisions to the visible address.

Invariants:
    - Every redirect goes through navigator.replace(): a rewritten address never
      leaves the deprecated one behind in history
    - The guard runs against the current identity snapshot on each call
"""

import logging

from cardsync.core.legacy_routes import (
    NavigationDecision,
    check_navigation,
    migrate_legacy_path,
    post_login_redirect,
)
from cardsync.core.repository_protocols import IdentityProvider, Navigator

logger = logging.getLogger(__name__)


class LegacyUrlMigrator:
    def __init__(self, identity: IdentityProvider, navigator: Navigator):
        self._identity = identity
        self._navigator = navigator

    def check(self, path: str | None = None) -> NavigationDecision:
        """Decision for path (default: the current address) without touching history."""
        if path is None:
            path = self._navigator.current().path
        return check_navigation(path, self._identity.current())

    def enforce(self) -> NavigationDecision:
        """Run the guard on the current address and apply any redirect."""
        path = self._navigator.current().path
        decision = self.check(path)
        if decision.redirects:
            logger.info(
                f"Redirecting {path} -> {decision.target} ({decision.reason})",
                extra={"path": path},
            )
            self._navigator.replace(decision.target)
        return decision

    def migrate(self, path: str) -> str | None:
        return migrate_legacy_path(path, self._identity.current())

    def complete_login(self, intended_path: str | None = None) -> str:
        target = post_login_redirect(self._identity.current(), intended_path)
        self._navigator.replace(target)
        return target
