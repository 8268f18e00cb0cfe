"""Route Table & Ownership Guard — legacy path migration and scope enforcement.

Invariants:
    - All functions are PURE: the identity is passed in, never looked up
    - Scoped routes render only when the path's :username equals the identity's scope slug
    - A scope mismatch redirects to the identity's own dashboard, never renders
    - Legacy paths map 1:1 to /<scope>/<section>; no identity -> /auth
    - Routes are matched in declaration order; scoped routes precede the public
      /:username/:cardSlug catch-all

Design Decisions:
    - Explicit LEGACY_ROUTES table over prefix rewriting: deprecated shapes are a
      closed set and each one is reviewed when added
    - Decisions returned as values (NavigationDecision), applied by the shell
      (services/legacy_migrator.py) through the Navigator boundary
"""

import re
from dataclasses import dataclass, field

from cardsync.core.domain_types import NavigationAction
from cardsync.core.identity import Identity

AUTH_PATH = "/auth"


@dataclass(frozen=True)
class Route:
    path: str
    name: str
    auth: bool = False
    user_scoped: bool = False
    exact: bool = False


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class NavigationDecision:
    action: NavigationAction
    target: str
    reason: str | None = None

    @property
    def redirects(self) -> bool:
        return self.action is NavigationAction.REDIRECT


# ─── Route Table ─────────────────────────────────────────────────

ROUTES: tuple[Route, ...] = (
    # Public
    Route("/", "landing", exact=True),
    Route("/auth", "auth", exact=True),
    Route("/auth/callback", "auth-callback", exact=True),
    Route("/help", "help", exact=True),
    Route("/help/:topic", "help-topic"),
    Route("/card/:token", "card-direct"),
    Route("/u/:slug", "card-profile-legacy"),
    Route("/upgrade", "upgrade", auth=True, exact=True),

    # Legacy, identity-agnostic (redirected before render)
    Route("/dashboard", "legacy-dashboard", auth=True, exact=True),
    Route("/editor", "legacy-editor", auth=True, exact=True),
    Route("/settings", "legacy-settings", auth=True, exact=True),
    Route("/cards", "legacy-cards", auth=True, exact=True),

    # Identity-scoped
    Route("/:username/dashboard", "dashboard", auth=True, user_scoped=True),
    Route("/:username/dashboard/analytics", "dashboard-analytics", auth=True, user_scoped=True),
    Route("/:username/editor", "editor", auth=True, user_scoped=True),
    Route("/:username/editor/:cardId", "editor-card", auth=True, user_scoped=True),
    Route("/:username/editor/:cardId/preview", "editor-preview", auth=True, user_scoped=True),
    Route("/:username/settings", "settings", auth=True, user_scoped=True),
    Route("/:username/settings/billing", "settings-billing", auth=True, user_scoped=True),
    Route("/:username/settings/account", "settings-account", auth=True, user_scoped=True),
    Route("/:username/cards", "cards-list", auth=True, user_scoped=True),

    # Public profiles and cards
    Route("/:username", "profile"),
    Route("/:username/:cardSlug", "card-live"),
)

# Deprecated path -> section under the identity's scope
LEGACY_ROUTES: dict[str, str] = {
    "/dashboard": "dashboard",
    "/editor": "editor",
    "/settings": "settings",
    "/cards": "cards",
}

_PARAM = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")
_RESERVED_FIRST_SEGMENTS = frozenset({"api", "auth", "help", "upgrade", "static", "card", "u"})


def _compile(route: Route) -> re.Pattern[str]:
    pattern = _PARAM.sub(lambda m: f"(?P<{m.group(1)}>[^/]+)", route.path)
    return re.compile(f"^{pattern}$")


_COMPILED = tuple((route, _compile(route)) for route in ROUTES)


def normalize_path(path: str) -> str:
    """Drop query/fragment and trailing slash; '/' stays '/'."""
    path = path.split("?", 1)[0].split("#", 1)[0] or "/"
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def match_route(path: str) -> RouteMatch | None:
    """First route matching the path, with its extracted params."""
    path = normalize_path(path)
    for route, regex in _COMPILED:
        if route.exact:
            if route.path == path:
                return RouteMatch(route)
            continue
        m = regex.match(path)
        if not m:
            continue
        params = m.groupdict()
        if params.get("username") in _RESERVED_FIRST_SEGMENTS:
            continue
        return RouteMatch(route, params)
    return None


# ─── Scoped Paths ────────────────────────────────────────────────

def scoped_path(identity: Identity, section: str = "dashboard") -> str | None:
    scope = identity.scope
    if scope is None:
        return None
    return f"/{scope}/{section}"


def migrate_legacy_path(path: str, identity: Identity | None) -> str | None:
    """Canonical identity-scoped path for a deprecated one, or None if not legacy / no scope."""
    section = LEGACY_ROUTES.get(normalize_path(path))
    if section is None or identity is None:
        return None
    return scoped_path(identity, section)


def is_legacy_path(path: str) -> bool:
    return normalize_path(path) in LEGACY_ROUTES


def has_scope_access(identity: Identity | None, requested_scope: str) -> bool:
    return identity is not None and identity.scope == requested_scope


# ─── Guard ───────────────────────────────────────────────────────

def check_navigation(path: str, identity: Identity | None) -> NavigationDecision:
    """Decide whether a path renders or redirects for this identity."""
    path = normalize_path(path)

    if is_legacy_path(path):
        target = migrate_legacy_path(path, identity)
        if target is None:
            return NavigationDecision(NavigationAction.REDIRECT, AUTH_PATH, "unauthenticated")
        return NavigationDecision(NavigationAction.REDIRECT, target, "legacy_path")

    match = match_route(path)
    if match is None or not match.route.auth:
        return NavigationDecision(NavigationAction.RENDER, path)

    if identity is None or identity.scope is None:
        return NavigationDecision(NavigationAction.REDIRECT, AUTH_PATH, "unauthenticated")

    if match.route.user_scoped and not has_scope_access(identity, match.params["username"]):
        return NavigationDecision(
            NavigationAction.REDIRECT, scoped_path(identity), "scope_mismatch",
        )
    return NavigationDecision(NavigationAction.RENDER, path)


def post_login_redirect(identity: Identity | None, intended_path: str | None = None) -> str:
    """Where to send an identity after sign-in: the intended path if it is theirs, else their dashboard."""
    if identity is None or identity.scope is None:
        return AUTH_PATH
    if intended_path:
        decision = check_navigation(intended_path, identity)
        if not decision.redirects:
            return decision.target
    return scoped_path(identity)
