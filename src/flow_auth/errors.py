"""
Error taxonomy for the login flow.

The backend client raises these; the token exchange client and the auth
verifier turn them into structured results at their boundary, so the
callback state machine only ever sees messages.
"""

from typing import Optional


class AuthError(Exception):
    """Base class; message is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProviderError(AuthError):
    """The identity provider redirected back with error/error_description."""

    def __init__(self, error: str, description: Optional[str], message: str):
        super().__init__(message)
        self.error = error
        self.description = description


class MissingCodeError(AuthError):
    """Callback carried neither a code nor a provider error."""


class StateMismatchError(AuthError):
    """Returned state nonce does not match the one issued at login."""


class ExchangeError(AuthError):
    """Backend rejected the authorization code or returned no token."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class VerificationError(AuthError):
    """Backend rejected the stored session credential."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NetworkError(AuthError):
    """Transport failure or timeout talking to the backend."""
