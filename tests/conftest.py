"""
Pytest configuration and fixtures for the login flow tests.

The trusted backend is replaced by httpx.MockTransport, so BackendClient runs
its real request/response handling without a server. The web layer is driven
in-process through httpx.ASGITransport.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI
from starlette.middleware.sessions import SessionMiddleware

from flow_auth import AuthContext, AuthRoutes, AuthSession, AuthSettings, BackendClient, MemoryStore
from flow_auth.tabs import PendingNavigation, TabRegistry

TOKEN = "gho_test_token"
USER = {"login": "octocat", "id": 1, "name": "The Octocat", "email": "octo@example.com"}


class FakeBackend:
    """Scriptable stand-in for /api/token, /api/user and /api/logout."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.valid_codes: set[str] = {"good-code"}
        self.used_codes: set[str] = set()
        self.token = TOKEN
        self.user: dict[str, Any] = dict(USER)
        self.user_status = 200
        self.logout_status = 200
        self.fail_transport = False

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_transport:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path == "/api/token":
            code = request.url.params.get("code")
            if code in self.used_codes:
                return httpx.Response(400, json={"message": "bad_verification_code"})
            if code not in self.valid_codes:
                return httpx.Response(401, json={"message": "invalid code"})
            self.used_codes.add(code)
            return httpx.Response(200, json={"token": self.token})
        if path == "/api/user":
            if request.headers.get("Authorization") != f"Bearer {self.token}":
                return httpx.Response(401, json={"error": "Not authenticated"})
            if self.user_status != 200:
                return httpx.Response(self.user_status, json={"error": "expired"})
            return httpx.Response(200, json=self.user)
        if path == "/api/logout":
            return httpx.Response(self.logout_status)
        return httpx.Response(404)


@pytest.fixture
def settings() -> AuthSettings:
    return AuthSettings(
        api_base_url="http://backend.test",
        redirect_uri="http://app.test/oauth/callback",
        redirect_delay=1.0,
        focus_debounce=0.0,
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend(settings: AuthSettings, fake_backend: FakeBackend) -> BackendClient:
    return BackendClient(settings, transport=httpx.MockTransport(fake_backend.handler))


@pytest.fixture
def store() -> MemoryStore:
    """Persistent store."""
    return MemoryStore()


@pytest.fixture
def tab_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def session() -> AuthSession:
    return AuthSession()


@pytest.fixture
def navigator() -> PendingNavigation:
    return PendingNavigation()


@pytest.fixture
def context(
    settings: AuthSettings,
    session: AuthSession,
    store: MemoryStore,
    tab_store: MemoryStore,
    backend: BackendClient,
    navigator: PendingNavigation,
) -> AuthContext:
    return AuthContext(
        settings=settings,
        session=session,
        store=store,
        tab_store=tab_store,
        backend=backend,
        navigator=navigator,
    )


def make_app(settings: AuthSettings, backend: BackendClient, registry: Optional[TabRegistry] = None) -> FastAPI:
    auth = AuthRoutes(settings, backend=backend, registry=registry)
    app = FastAPI()
    app.add_middleware(SessionMiddleware, secret_key="test-secret")
    app.include_router(auth.router)

    @app.get("/dashboard")
    async def dashboard(user: dict = Depends(auth.require_user)):
        return {"login": user["login"]}

    return app


@pytest.fixture
def registry() -> TabRegistry:
    return TabRegistry()


@pytest_asyncio.fixture(scope="function")
async def client(
    settings: AuthSettings, backend: BackendClient, registry: TabRegistry
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async test client for an app with the auth routes mounted."""
    transport = httpx.ASGITransport(app=make_app(settings, backend, registry))
    async with httpx.AsyncClient(transport=transport, base_url="http://app.test") as client:
        yield client
