"""
Re-validation of the stored session credential against the backend.

verify() is total: every branch ends in a session assignment and runs inside
AuthSession.track(), so loading always settles. A rejected credential is an
invalidation, not an error for the user: it is deleted along with the cached
profile and the session silently becomes logged out.
"""

import logging
import time

from .backend import BackendClient
from .errors import AuthError
from .protocol import KeyValueStore
from .session import AuthSession
from .storage import TOKEN_KEY, USER_CACHE_KEY, cache_user, fingerprint

logger = logging.getLogger(__name__)


class AuthVerifier:
    """Keeps AuthSession in line with what the backend says about the credential."""

    def __init__(
        self,
        session: AuthSession,
        store: KeyValueStore,
        backend: BackendClient,
        callback_path: str,
        focus_debounce: float = 0.0,
    ):
        self.session = session
        self.store = store
        self.backend = backend
        self.callback_path = callback_path
        self.focus_debounce = focus_debounce

    async def verify(self) -> None:
        token = self.store.get(TOKEN_KEY)
        if not token:
            # no credential, no network call
            self.store.delete(USER_CACHE_KEY)
            self.session.clear()
            return

        with self.session.track():
            try:
                user = await self.backend.get_user(token)
            except AuthError as e:
                logger.info("Stored credential %s rejected: %s", fingerprint(token), e.message)
                self.store.delete(TOKEN_KEY)
                self.store.delete(USER_CACHE_KEY)
                self.session.clear()
                return
            cache_user(self.store, user)
            self.session.authenticate(user)
            logger.debug("Credential %s verified", fingerprint(token))

    def _on_callback_route(self, path: str) -> bool:
        return path.rstrip("/") == self.callback_path.rstrip("/")

    async def on_mount(self, path: str) -> bool:
        """Verify on entry to a view; the callback view does its own verification."""
        if self._on_callback_route(path):
            logger.debug("Skipping mount verification on the callback route")
            return False
        await self.verify()
        return True

    async def on_focus(self, path: str) -> bool:
        """Re-validate when the client regains focus, unless something is in flight."""
        if self._on_callback_route(path):
            logger.debug("Skipping focus verification on the callback route")
            return False
        if self.session.loading:
            logger.debug("Skipping focus verification while loading")
            return False
        verified_at = self.session.verified_at
        if verified_at is not None and time.monotonic() - verified_at < self.focus_debounce:
            logger.debug("Skipping focus verification inside debounce window")
            return False
        await self.verify()
        return True
