"""Local and backend session teardown."""

import logging

from .backend import BackendClient
from .errors import AuthError
from .protocol import KeyValueStore, Navigator
from .session import AuthSession
from .storage import REDIRECT_KEY, STATE_NONCE_KEY, TOKEN_KEY, USER_CACHE_KEY

logger = logging.getLogger(__name__)

_PERSISTED_KEYS = (TOKEN_KEY, USER_CACHE_KEY, REDIRECT_KEY, STATE_NONCE_KEY)


class LogoutHandler:
    def __init__(
        self,
        session: AuthSession,
        store: KeyValueStore,
        backend: BackendClient,
        navigator: Navigator,
        login_path: str,
    ):
        self.session = session
        self.store = store
        self.backend = backend
        self.navigator = navigator
        self.login_path = login_path

    async def logout(self) -> None:
        """Clear every local artifact, tell the backend, go to the login view."""
        token = self.store.get(TOKEN_KEY)
        for key in _PERSISTED_KEYS:
            self.store.delete(key)
        self.session.clear()

        # best effort: local teardown already happened
        try:
            await self.backend.logout(token)
        except AuthError as e:
            logger.warning("Backend logout failed: %s", e.message)
        else:
            logger.info("Logged out")

        self.navigator.navigate(self.login_path)
