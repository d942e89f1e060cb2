"""
OAuth2 authorization-code login flow and session lifecycle.

Exposes the framework-agnostic pieces (AuthContext and the components it
wires: login builder, callback processor, token exchange, verifier, redirect
resolver, logout handler), the storage and navigation seams, and the FastAPI
routes (AuthRoutes).
"""

from .backend import BackendClient, ExchangeResult, TokenExchangeClient
from .callback import CallbackOutcome, CallbackParams, CallbackProcessor, CallbackState
from .config import AuthSettings
from .context import AuthContext
from .errors import (
    AuthError,
    ExchangeError,
    MissingCodeError,
    NetworkError,
    ProviderError,
    StateMismatchError,
    VerificationError,
)
from .login import AuthorizationRequest, AuthorizationRequestBuilder
from .logout import LogoutHandler
from .protocol import KeyValueStore, Navigator
from .redirects import RedirectResolver, decode_state, encode_state
from .router import AuthRoutes
from .session import AuthSession, SessionSnapshot
from .storage import MappingStore, MemoryStore, ProcessedCodeGuard
from .verifier import AuthVerifier

__all__ = [
    "AuthContext",
    "AuthSettings",
    "AuthSession",
    "SessionSnapshot",
    "AuthorizationRequest",
    "AuthorizationRequestBuilder",
    "CallbackOutcome",
    "CallbackParams",
    "CallbackProcessor",
    "CallbackState",
    "BackendClient",
    "TokenExchangeClient",
    "ExchangeResult",
    "AuthVerifier",
    "RedirectResolver",
    "encode_state",
    "decode_state",
    "LogoutHandler",
    "KeyValueStore",
    "Navigator",
    "MemoryStore",
    "MappingStore",
    "ProcessedCodeGuard",
    "AuthRoutes",
    "AuthError",
    "ProviderError",
    "MissingCodeError",
    "StateMismatchError",
    "ExchangeError",
    "VerificationError",
    "NetworkError",
]
