"""Route Table & Ownership Guard — verifies legacy migration and scope enforcement.

Tests:
    - Legacy paths redirect to the identity's scoped section (or /auth when anonymous)
    - Scoped routes render only for the owning scope; mismatches go to the own dashboard
    - Public routes render for everyone
    - Reserved first segments never match :username
    - post_login_redirect keeps an intended path only when it passes the guard
"""

import pytest

from cardsync.core.domain_types import NavigationAction, UserId
from cardsync.core.identity import Identity
from cardsync.core.legacy_routes import (
    AUTH_PATH,
    check_navigation,
    is_legacy_path,
    match_route,
    migrate_legacy_path,
    normalize_path,
    post_login_redirect,
)

ELENA = Identity(UserId("u-1"), "elena.castillo@example.com")


@pytest.mark.parametrize("legacy, expected", [
    ("/dashboard", "/elena-castillo/dashboard"),
    ("/editor", "/elena-castillo/editor"),
    ("/settings/", "/elena-castillo/settings"),
    ("/cards", "/elena-castillo/cards"),
])
def test_legacy_paths_migrate_to_scoped(legacy, expected):
    assert migrate_legacy_path(legacy, ELENA) == expected
    decision = check_navigation(legacy, ELENA)
    assert decision.action is NavigationAction.REDIRECT
    assert decision.target == expected
    assert decision.reason == "legacy_path"


def test_legacy_path_without_identity_goes_to_auth():
    decision = check_navigation("/dashboard", None)
    assert decision.target == AUTH_PATH
    assert migrate_legacy_path("/dashboard", None) is None


def test_non_legacy_path_does_not_migrate():
    assert migrate_legacy_path("/help", ELENA) is None
    assert not is_legacy_path("/elena-castillo/dashboard")


def test_own_scoped_route_renders():
    decision = check_navigation("/elena-castillo/editor/card-9/preview", ELENA)
    assert decision.action is NavigationAction.RENDER
    assert not decision.redirects


def test_foreign_scope_redirects_to_own_dashboard():
    decision = check_navigation("/someone-else/settings/billing", ELENA)
    assert decision.redirects
    assert decision.target == "/elena-castillo/dashboard"
    assert decision.reason == "scope_mismatch"


def test_scoped_route_without_identity_goes_to_auth():
    assert check_navigation("/elena-castillo/dashboard", None).target == AUTH_PATH


def test_public_routes_render_for_anonymous():
    for path in ("/", "/help/billing", "/card/abc", "/u/elena", "/elena-castillo", "/elena-castillo/my-card"):
        assert check_navigation(path, None).action is NavigationAction.RENDER


def test_match_route_extracts_params():
    match = match_route("/elena-castillo/editor/card-9")
    assert match.route.name == "editor-card"
    assert match.params == {"username": "elena-castillo", "cardId": "card-9"}


def test_match_route_prefers_scoped_over_public_card():
    assert match_route("/elena-castillo/dashboard").route.name == "dashboard"
    assert match_route("/elena-castillo/launch-card").route.name == "card-live"


def test_reserved_segments_are_not_usernames():
    assert match_route("/api/anything") is None
    assert match_route("/card/abc").route.name == "card-direct"


def test_normalize_path():
    assert normalize_path("/dashboard/?x=1#top") == "/dashboard"
    assert normalize_path("") == "/"
    assert normalize_path("/") == "/"


def test_post_login_redirect():
    assert post_login_redirect(ELENA, "/elena-castillo/settings") == "/elena-castillo/settings"
    assert post_login_redirect(ELENA, "/other/settings") == "/elena-castillo/dashboard"
    assert post_login_redirect(ELENA, "/dashboard") == "/elena-castillo/dashboard"
    assert post_login_redirect(ELENA) == "/elena-castillo/dashboard"
    assert post_login_redirect(None, "/elena-castillo/settings") == AUTH_PATH
