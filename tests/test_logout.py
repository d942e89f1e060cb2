"""Tests for session teardown."""

import pytest

from flow_auth import LogoutHandler
from flow_auth.storage import REDIRECT_KEY, TOKEN_KEY, USER_CACHE_KEY
from tests.conftest import TOKEN, USER


def make_handler(session, store, backend, navigator):
    return LogoutHandler(session, store, backend, navigator, login_path="/login")


@pytest.mark.asyncio
async def test_logout_clears_everything(session, store, backend, navigator, fake_backend):
    store.set(TOKEN_KEY, TOKEN)
    store.set(USER_CACHE_KEY, "{}")
    store.set(REDIRECT_KEY, "/x")
    session.authenticate(USER)

    await make_handler(session, store, backend, navigator).logout()

    assert len(store) == 0
    assert session.state.as_dict() == {"isAuthenticated": False, "user": None, "loading": False}
    (request,) = fake_backend.calls("/api/logout")
    assert request.method == "POST"
    assert request.headers["Authorization"] == f"Bearer {TOKEN}"
    assert navigator.url == "/login"


@pytest.mark.asyncio
async def test_logout_twice_is_harmless(session, store, backend, navigator):
    store.set(TOKEN_KEY, TOKEN)
    handler = make_handler(session, store, backend, navigator)

    await handler.logout()
    first = session.state
    await handler.logout()

    assert session.state == first
    assert len(store) == 0
    assert navigator.url == "/login"


@pytest.mark.asyncio
async def test_backend_failure_does_not_block_teardown(session, store, backend, navigator, fake_backend):
    store.set(TOKEN_KEY, TOKEN)
    session.authenticate(USER)
    fake_backend.fail_transport = True

    await make_handler(session, store, backend, navigator).logout()

    assert store.get(TOKEN_KEY) is None
    assert not session.is_authenticated
    assert navigator.url == "/login"


@pytest.mark.asyncio
async def test_backend_error_status_is_ignored(session, store, backend, navigator, fake_backend):
    fake_backend.logout_status = 500

    await make_handler(session, store, backend, navigator).logout()

    assert navigator.url == "/login"


@pytest.mark.asyncio
async def test_logout_with_unsendable_credential(session, store, backend, navigator, fake_backend):
    store.set(TOKEN_KEY, "tök")

    await make_handler(session, store, backend, navigator).logout()

    assert store.get(TOKEN_KEY) is None
    assert fake_backend.requests == []
    assert navigator.url == "/login"
