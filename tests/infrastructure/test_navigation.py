"""History Navigator — verifies browser-like history semantics.

Tests:
    - push() appends and drops forward entries; replace() keeps the length
    - back()/forward() move within bounds and notify listeners
    - push/replace notify nobody
"""

from cardsync.infrastructure.navigation import HistoryLocation, HistoryNavigator


def test_location_parsing():
    location = HistoryLocation.parse("/?shareId=abc")
    assert (location.path, location.query) == ("/", "shareId=abc")
    assert location.url == "/?shareId=abc"
    assert HistoryLocation.parse("").path == "/"


def test_push_and_replace():
    nav = HistoryNavigator("/home")
    nav.push("/a")
    nav.replace("/b")
    assert nav.entries() == ["/home", "/b"]
    assert nav.length == 2


def test_push_drops_forward_entries():
    nav = HistoryNavigator("/home")
    nav.push("/a")
    nav.push("/b")
    nav.back()
    nav.push("/c")
    assert nav.entries() == ["/home", "/a", "/c"]


def test_back_and_forward_notify_listeners():
    nav = HistoryNavigator("/home")
    seen = []
    unsubscribe = nav.subscribe(lambda location: seen.append(location.url))
    nav.push("/a")
    nav.replace("/b")
    nav.back()
    nav.forward()
    nav.forward()  # at the end: no-op
    unsubscribe()
    nav.back()
    assert seen == ["/home", "/b"]
    assert nav.current().url == "/home"
