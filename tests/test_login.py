"""Tests for building the authorization request."""

from dataclasses import replace
from urllib.parse import parse_qs, urlparse

from flow_auth import AuthorizationRequestBuilder, decode_state
from flow_auth.storage import REDIRECT_KEY, STATE_NONCE_KEY


def test_begin_login_navigates_to_authorization_url(settings, store, navigator):
    AuthorizationRequestBuilder(settings, store, navigator).begin_login("/projects/starred")

    url = urlparse(navigator.url)
    query = parse_qs(url.query)
    assert f"{url.scheme}://{url.netloc}{url.path}" == "http://backend.test/oauth2/authorization/github"
    assert query["redirect_uri"] == ["http://app.test/oauth/callback"]
    assert decode_state(query["state"][0])["redirect"] == "/projects/starred"
    assert store.get(REDIRECT_KEY) == "/projects/starred"
    # nonce only persisted when state checking is on
    assert store.get(STATE_NONCE_KEY) is None


def test_default_redirect(settings, store, navigator):
    request = AuthorizationRequestBuilder(settings, store, navigator).build()

    assert request.redirect_path == "/dashboard"
    assert store.get(REDIRECT_KEY) == "/dashboard"


def test_each_login_gets_a_fresh_nonce(settings, store, navigator):
    builder = AuthorizationRequestBuilder(settings, store, navigator)

    first = decode_state(builder.build().state)["nonce"]
    second = decode_state(builder.build().state)["nonce"]

    assert first and second and first != second


def test_nonce_persisted_when_checking_state(settings, store, navigator):
    builder = AuthorizationRequestBuilder(replace(settings, verify_state=True), store, navigator)

    request = builder.build("/a")

    assert store.get(STATE_NONCE_KEY) == decode_state(request.state)["nonce"]


def test_unserializable_redirect_falls_back_to_empty_state(settings, store, navigator):
    builder = AuthorizationRequestBuilder(settings, store, navigator)

    request = builder.build(object())

    assert request.state == ""
    assert "state=" in request.url
