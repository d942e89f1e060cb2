"""Tests for state encoding and post-login destination resolution."""

from flow_auth import MemoryStore, RedirectResolver, decode_state, encode_state
from flow_auth.storage import REDIRECT_KEY


def resolver(persisted=None):
    store = MemoryStore({REDIRECT_KEY: persisted} if persisted else None)
    return store, RedirectResolver(store, default="/dashboard")


def test_state_wins_over_persisted_value():
    store, r = resolver("/b")
    assert r.resolve(encode_state("/a")) == "/a"
    assert REDIRECT_KEY not in store
    assert r.resolve(None) == "/dashboard"


def test_persisted_value_when_state_undecodable():
    store, r = resolver("/b")
    assert r.resolve("%7Bnot-json") == "/b"
    assert REDIRECT_KEY not in store


def test_default_when_nothing_available():
    _, r = resolver()
    assert r.resolve(None) == "/dashboard"


def test_persisted_value_is_consumed_once():
    store, r = resolver("/b")
    assert r.resolve(None) == "/b"
    assert r.resolve(None) == "/dashboard"


def test_state_without_redirect_falls_through():
    _, r = resolver("/b")
    assert r.resolve(encode_state("")) == "/b"


def test_non_local_targets_are_ignored():
    store, r = resolver("https://evil.example/")
    assert r.resolve(encode_state("//evil.example/x")) == "/dashboard"
    assert REDIRECT_KEY not in store


def test_state_round_trip_through_query_decoding():
    state = encode_state("/insights/health?tab=1", nonce="abc")
    assert "{" not in state and "&" not in state
    assert decode_state(state) == {"redirect": "/insights/health?tab=1", "nonce": "abc"}


def test_decode_state_rejects_non_objects():
    assert decode_state(None) is None
    assert decode_state("") is None
    assert decode_state("%5B1%2C2%5D") is None
