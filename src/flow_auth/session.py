"""
In-memory session state shared by every protected view of one client.

AuthSession is the single owner of {is_authenticated, user, loading}. Only the
auth verifier, the callback processor and the logout handler mutate it; views
read snapshots or subscribe to changes.

loading is derived from the number of in-flight verifications/exchanges
entered through track(), so overlapping calls cannot leave it stuck at True:
it drops back to False when the last of them settles.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    is_authenticated: bool
    user: Optional[dict]
    loading: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "isAuthenticated": self.is_authenticated,
            "user": self.user,
            "loading": self.loading,
        }


Listener = Callable[[SessionSnapshot], None]


class AuthSession:
    """Observable session state; starts out loading until the first check settles."""

    def __init__(self) -> None:
        self._state = SessionSnapshot(is_authenticated=False, user=None, loading=True)
        self._in_flight = 0
        self._listeners: List[Listener] = []
        # monotonic time of the last settled verification, used to debounce focus checks
        self.verified_at: Optional[float] = None

    @property
    def state(self) -> SessionSnapshot:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def user(self) -> Optional[dict]:
        return self._state.user

    @property
    def loading(self) -> bool:
        return self._state.loading

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener for every state change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def track(self) -> Iterator[None]:
        """Mark async session work as in flight; loading is True while any is."""
        self._in_flight += 1
        self._publish(self._state.is_authenticated, self._state.user)
        try:
            yield
        finally:
            self._in_flight -= 1
            self._publish(self._state.is_authenticated, self._state.user)

    def authenticate(self, user: dict) -> None:
        if not user:
            raise ValueError("an authenticated session needs a user profile")
        self.verified_at = time.monotonic()
        self._publish(True, user)

    def clear(self) -> None:
        self.verified_at = time.monotonic()
        self._publish(False, None)

    def _publish(self, is_authenticated: bool, user: Optional[dict]) -> None:
        state = SessionSnapshot(
            is_authenticated=is_authenticated,
            user=user,
            loading=self._in_flight > 0,
        )
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session listener failed")
