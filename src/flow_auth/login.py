"""
Authorization request construction: the start of the login round trip.

begin_login() persists the intended destination, embeds it in the state
parameter and navigates to the backend's authorization endpoint, which in
turn sends the browser to the identity provider.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from authlib.common.security import generate_token
from authlib.common.urls import add_params_to_uri

from .config import AuthSettings
from .protocol import KeyValueStore, Navigator
from .redirects import encode_state
from .storage import REDIRECT_KEY, STATE_NONCE_KEY, fingerprint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationRequest:
    url: str
    state: str
    redirect_path: str


class AuthorizationRequestBuilder:
    """Builds the provider redirect URL and hands control to the navigator."""

    def __init__(self, settings: AuthSettings, store: KeyValueStore, navigator: Navigator):
        self.settings = settings
        self.store = store
        self.navigator = navigator

    def build(self, redirect_path: Optional[str] = None) -> AuthorizationRequest:
        """Persist the login context and return the authorization request."""
        redirect_path = redirect_path or self.settings.default_redirect
        self.store.set(REDIRECT_KEY, redirect_path)

        nonce = generate_token(24)
        try:
            state = encode_state(redirect_path, nonce)
        except (TypeError, ValueError):
            logger.warning("Could not serialize login state; continuing without it")
            state = ""
        if self.settings.verify_state and state:
            self.store.set(STATE_NONCE_KEY, nonce)

        url = add_params_to_uri(
            self.settings.authorization_url,
            [("redirect_uri", self.settings.redirect_uri), ("state", state)],
        )
        return AuthorizationRequest(url=url, state=state, redirect_path=redirect_path)

    def begin_login(self, redirect_path: Optional[str] = None) -> None:
        request = self.build(redirect_path)
        logger.info(
            "Starting login (redirect %s, state %s)", request.redirect_path, fingerprint(request.state)
        )
        self.navigator.navigate(request.url)
