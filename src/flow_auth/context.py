"""
AuthContext: one client's login flow, wired from explicit collaborators.

Views receive an AuthContext instead of reaching for global state. The context
owns no state of its own; the session, both stores, the backend client and the
navigator are handed in, so each can be swapped (browser storage, cookie
session, dict) or faked in tests.
"""

from dataclasses import dataclass
from typing import Optional

from .backend import BackendClient, TokenExchangeClient
from .callback import CallbackParams, CallbackProcessor
from .config import AuthSettings
from .login import AuthorizationRequestBuilder
from .logout import LogoutHandler
from .protocol import KeyValueStore, Navigator
from .redirects import RedirectResolver
from .session import AuthSession
from .verifier import AuthVerifier


@dataclass
class AuthContext:
    settings: AuthSettings
    session: AuthSession
    store: KeyValueStore
    tab_store: KeyValueStore
    backend: BackendClient
    navigator: Navigator

    @property
    def verifier(self) -> AuthVerifier:
        return AuthVerifier(
            self.session,
            self.store,
            self.backend,
            callback_path=self.settings.callback_path,
            focus_debounce=self.settings.focus_debounce,
        )

    @property
    def resolver(self) -> RedirectResolver:
        return RedirectResolver(self.store, self.settings.default_redirect)

    @property
    def exchanger(self) -> TokenExchangeClient:
        return TokenExchangeClient(self.backend, self.store)

    def login(self, redirect_path: Optional[str] = None) -> None:
        AuthorizationRequestBuilder(self.settings, self.store, self.navigator).begin_login(redirect_path)

    def callback_processor(self) -> CallbackProcessor:
        """A fresh state machine for one callback invocation."""
        return CallbackProcessor(
            session=self.session,
            store=self.store,
            tab_store=self.tab_store,
            exchanger=self.exchanger,
            verifier=self.verifier,
            resolver=self.resolver,
            navigator=self.navigator,
            provider_name=self.settings.provider_name,
            redirect_delay=self.settings.redirect_delay,
            verify_state=self.settings.verify_state,
        )

    async def handle_callback(self, params: CallbackParams):
        return await self.callback_processor().process(params)

    async def logout(self) -> None:
        await LogoutHandler(
            self.session, self.store, self.backend, self.navigator, self.settings.login_path
        ).logout()
