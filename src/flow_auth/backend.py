"""
HTTP client for the trusted backend and the token exchange built on it.

The client never talks to the identity provider: the backend owns the
provider integration and trades authorization codes for session credentials.
BackendClient raises flow_auth.errors exceptions; TokenExchangeClient is the
boundary that turns them into an ExchangeResult.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import AuthSettings
from .errors import AuthError, ExchangeError, NetworkError, VerificationError
from .protocol import KeyValueStore
from .storage import TOKEN_KEY, fingerprint

logger = logging.getLogger(__name__)

TOKEN_PATH = "/api/token"
USER_PATH = "/api/user"
LOGOUT_PATH = "/api/logout"


def _error_detail(response: httpx.Response) -> str:
    """Prefer the backend's message/error field; fall back to the raw body."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for field in ("message", "error_description", "error"):
            value = data.get(field)
            if isinstance(value, str) and value:
                return value
    return response.text.strip()


def _header_safe(token: str) -> bool:
    """HTTP header values are ASCII; anything else cannot be sent as a bearer."""
    return token.isascii() and token.isprintable() and " " not in token


class BackendClient:
    """Calls /api/token, /api/user and /api/logout on the trusted backend."""

    def __init__(self, settings: AuthSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def get_token(self, code: str) -> str:
        """Exchange an authorization code for a session credential."""
        try:
            async with self._client() as client:
                r = await client.get(TOKEN_PATH, params={"code": code})
        except httpx.HTTPError as e:
            raise NetworkError(f"Could not reach the authentication server: {e}") from e

        if not r.is_success:
            detail = _error_detail(r)
            message = f"Server responded with status {r.status_code}"
            if detail:
                message = f"{message}: {detail}"
            raise ExchangeError(message, status=r.status_code)
        try:
            data = r.json()
        except ValueError:
            data = None
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise ExchangeError("No token received from server", status=r.status_code)
        if not _header_safe(token):
            raise ExchangeError("Invalid token received from server", status=r.status_code)
        return token

    async def get_user(self, token: str) -> dict:
        """Return the profile behind token; any non-2xx means not authenticated."""
        if not _header_safe(token):
            raise VerificationError("Credential cannot be sent as a header value")
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with self._client() as client:
                r = await client.get(USER_PATH, headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(f"Could not reach the authentication server: {e}") from e

        if not r.is_success:
            raise VerificationError(
                f"Credential rejected with status {r.status_code}", status=r.status_code
            )
        try:
            data = r.json()
        except ValueError as e:
            raise VerificationError("User endpoint returned invalid JSON", status=r.status_code) from e
        # Some backends wrap the profile as {"isAuthenticated": true, "user": {...}}
        if isinstance(data, dict) and isinstance(data.get("user"), dict) and "isAuthenticated" in data:
            if not data["isAuthenticated"]:
                raise VerificationError("Backend reports the session as unauthenticated", status=r.status_code)
            data = data["user"]
        if not isinstance(data, dict) or not data:
            raise VerificationError("User endpoint returned no profile", status=r.status_code)
        return data

    async def logout(self, token: Optional[str] = None) -> None:
        """Invalidate the backend session; the response body is ignored."""
        if token and not _header_safe(token):
            raise AuthError("Credential cannot be sent as a header value")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            async with self._client() as client:
                r = await client.post(LOGOUT_PATH, headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(f"Could not reach the authentication server: {e}") from e
        if not r.is_success:
            raise AuthError(f"Logout responded with status {r.status_code}")


@dataclass(frozen=True)
class ExchangeResult:
    success: bool
    token: Optional[str] = None
    error: Optional[str] = None


class TokenExchangeClient:
    """Trades a code for a credential and persists it; never raises."""

    def __init__(self, backend: BackendClient, store: KeyValueStore):
        self.backend = backend
        self.store = store

    async def exchange(self, code: str) -> ExchangeResult:
        if not code:
            return ExchangeResult(success=False, error="No authentication code to exchange")
        try:
            token = await self.backend.get_token(code)
        except AuthError as e:
            logger.warning("Token exchange failed for code %s: %s", fingerprint(code), e.message)
            return ExchangeResult(success=False, error=e.message)

        self.store.set(TOKEN_KEY, token)
        logger.info("Token exchange succeeded for code %s (token %s)", fingerprint(code), fingerprint(token))
        return ExchangeResult(success=True, token=token)
