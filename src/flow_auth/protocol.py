"""
Protocols for the collaborators the login flow is wired against.

Implementations of KeyValueStore back the persistent store (credential,
intended redirect, cached profile) and the tab-scoped store (last processed
authorization code). Implementations of Navigator perform the full-page
navigations the flow ends with.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Narrow string key-value store (browser storage, cookie session, dict)."""

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...

    def delete(self, key: str) -> None:
        """Remove key; a missing key is not an error."""
        ...


@runtime_checkable
class Navigator(Protocol):
    """Performs a full navigation away from the current view."""

    def navigate(self, url: str, delay: float = 0.0) -> None:
        """Navigate to url, optionally after delay seconds."""
        ...
