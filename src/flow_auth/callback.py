"""
Callback processing: the state machine run when the client lands on the
callback route with authorization-response parameters.

    Idle -> AlreadyProcessed                       (terminal, success)
         -> ErrorFromProvider | MissingCode        (terminal, failure)
         -> StateMismatch                          (terminal, failure; only with state checking)
         -> Exchanging -> ExchangeFailed           (terminal, failure)
                       -> ExchangeSucceeded -> Verifying -> Redirecting (terminal, success)

The processed-code guard is written before the exchange is awaited, so a
second invocation for the same code (remount, refresh, double submit) goes
to AlreadyProcessed instead of spending the single-use code twice. Failures
are never retried here; the user restarts login from the login view.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Mapping, Optional

from .backend import TokenExchangeClient
from .errors import AuthError, MissingCodeError, ProviderError, StateMismatchError
from .protocol import KeyValueStore, Navigator
from .redirects import RedirectResolver, decode_state
from .session import AuthSession
from .storage import STATE_NONCE_KEY, TOKEN_KEY, ProcessedCodeGuard, fingerprint
from .verifier import AuthVerifier

logger = logging.getLogger(__name__)

# error code -> message template; {provider} is the configured provider name
PROVIDER_ERROR_MESSAGES = {
    "access_denied": "You denied access to your {provider} account.",
    "invalid_request": "Invalid OAuth request. Please try again.",
    "unauthorized_client": "This application is not authorized for {provider} OAuth.",
    "unsupported_response_type": "{provider} OAuth response type not supported.",
    "server_error": "{provider} server error occurred during authentication.",
    "temporarily_unavailable": "{provider} authentication service is temporarily unavailable.",
}


class CallbackState(str, Enum):
    IDLE = "idle"
    ALREADY_PROCESSED = "already_processed"
    ERROR_FROM_PROVIDER = "error_from_provider"
    MISSING_CODE = "missing_code"
    STATE_MISMATCH = "state_mismatch"
    EXCHANGING = "exchanging"
    EXCHANGE_FAILED = "exchange_failed"
    EXCHANGE_SUCCEEDED = "exchange_succeeded"
    VERIFYING = "verifying"
    REDIRECTING = "redirecting"

    @property
    def succeeded(self) -> bool:
        return self in (CallbackState.ALREADY_PROCESSED, CallbackState.REDIRECTING)


@dataclass(frozen=True)
class CallbackParams:
    """Authorization response parameters as they arrived on the callback URL."""

    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> "CallbackParams":
        def value(key: str) -> Optional[str]:
            raw = query.get(key)
            if isinstance(raw, (list, tuple)):
                raw = raw[0] if raw else None
            return raw or None

        return cls(
            code=value("code"),
            state=value("state"),
            error=value("error"),
            error_description=value("error_description"),
        )


@dataclass
class CallbackOutcome:
    state: CallbackState
    message: str
    redirect_to: Optional[str] = None
    delay: float = 0.0
    error: Optional[AuthError] = None
    debug: Optional[dict] = None

    @property
    def succeeded(self) -> bool:
        return self.state.succeeded

    def as_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "success": self.succeeded,
            "message": self.message,
            "redirect_to": self.redirect_to,
            "debug": self.debug,
        }


def provider_error(error: str, description: Optional[str], provider: str) -> ProviderError:
    """Map a provider error code to the message shown to the user."""
    template = PROVIDER_ERROR_MESSAGES.get(error)
    if template:
        message = template.format(provider=provider)
    elif description:
        message = description
    else:
        message = f"Authentication error: {error}"
    return ProviderError(error, description, message)


def _mask(value: Optional[str], keep: int) -> Optional[str]:
    return f"{value[:keep]}..." if value else None


class CallbackProcessor:
    """Runs one callback invocation through the state machine above."""

    def __init__(
        self,
        session: AuthSession,
        store: KeyValueStore,
        tab_store: KeyValueStore,
        exchanger: TokenExchangeClient,
        verifier: AuthVerifier,
        resolver: RedirectResolver,
        navigator: Navigator,
        provider_name: str = "GitHub",
        redirect_delay: float = 1.0,
        verify_state: bool = False,
    ):
        self.session = session
        self.store = store
        self.guard = ProcessedCodeGuard(tab_store)
        self.exchanger = exchanger
        self.verifier = verifier
        self.resolver = resolver
        self.navigator = navigator
        self.provider_name = provider_name
        self.redirect_delay = redirect_delay
        self.verify_state = verify_state
        self.state = CallbackState.IDLE
        self.history: List[CallbackState] = [CallbackState.IDLE]

    def _enter(self, state: CallbackState) -> None:
        logger.debug("Callback %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _fail(self, state: CallbackState, error: AuthError) -> CallbackOutcome:
        self._enter(state)
        logger.info("Callback ended in %s: %s", state.value, error.message)
        return CallbackOutcome(state=state, message=error.message, error=error)

    def _state_matches(self, state: Optional[str]) -> bool:
        expected = self.store.get(STATE_NONCE_KEY)
        self.store.delete(STATE_NONCE_KEY)
        payload = decode_state(state) or {}
        return bool(expected) and payload.get("nonce") == expected

    def debug_info(self, params: CallbackParams, path: str) -> dict[str, Any]:
        return {
            "path": path,
            "code": _mask(params.code, 6),
            "state": _mask(params.state, 10),
            "error": params.error,
            "error_description": params.error_description,
            "has_stored_token": bool(self.store.get(TOKEN_KEY)),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def process(self, params: CallbackParams) -> CallbackOutcome:
        if self.state is not CallbackState.IDLE:
            raise RuntimeError("a CallbackProcessor handles a single callback")

        code = params.code
        if self.guard.seen(code):
            self._enter(CallbackState.ALREADY_PROCESSED)
            target = self.resolver.resolve(params.state)
            logger.info("Code %s already processed; redirecting to %s", fingerprint(code), target)
            self.navigator.navigate(target)
            return CallbackOutcome(
                state=self.state, message="Already signed in. Redirecting...", redirect_to=target
            )

        if params.error:
            return self._fail(
                CallbackState.ERROR_FROM_PROVIDER,
                provider_error(params.error, params.error_description, self.provider_name),
            )

        if not code:
            return self._fail(
                CallbackState.MISSING_CODE,
                MissingCodeError(f"No authentication code received from {self.provider_name}."),
            )

        if self.verify_state and not self._state_matches(params.state):
            return self._fail(
                CallbackState.STATE_MISMATCH,
                StateMismatchError("Invalid login state. Please try again."),
            )

        with self.session.track():
            # guard first: the exchange below is the only suspension point
            self.guard.remember(code)
            self._enter(CallbackState.EXCHANGING)
            result = await self.exchanger.exchange(code)
            if not result.success:
                return self._fail(
                    CallbackState.EXCHANGE_FAILED,
                    AuthError(f"Authentication failed: {result.error}"),
                )

            self._enter(CallbackState.EXCHANGE_SUCCEEDED)
            self._enter(CallbackState.VERIFYING)
            await self.verifier.verify()
            if not self.session.is_authenticated:
                logger.warning("New credential did not verify; redirecting anyway")

        self._enter(CallbackState.REDIRECTING)
        target = self.resolver.resolve(params.state)
        self.navigator.navigate(target, delay=self.redirect_delay)
        return CallbackOutcome(
            state=self.state,
            message=f"Successfully authenticated with {self.provider_name}!",
            redirect_to=target,
            delay=self.redirect_delay,
        )
