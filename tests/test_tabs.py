"""Tests for per-tab state in the web layer."""

from flow_auth.tabs import PendingNavigation, TabRegistry


def test_known_tab_is_reused():
    registry = TabRegistry()
    tab_id, tab = registry.get(None)

    again_id, again = registry.get(tab_id)

    assert again_id == tab_id
    assert again is tab


def test_unknown_tab_gets_fresh_state():
    registry = TabRegistry()

    tab_id, tab = registry.get("forged-or-expired")

    assert tab_id != "forged-or-expired"
    assert tab.session.loading is True
    assert len(tab.store) == 0


def test_least_recently_used_tab_is_evicted():
    registry = TabRegistry(max_tabs=2)
    first, _ = registry.get(None)
    second, _ = registry.get(None)
    registry.get(first)
    registry.get(None)

    assert len(registry) == 2
    assert registry.get(second)[0] != second


def test_pending_navigation_records_last_target():
    navigation = PendingNavigation()
    navigation.navigate("/a")
    navigation.navigate("/b", delay=1.5)

    assert (navigation.url, navigation.delay) == ("/b", 1.5)
