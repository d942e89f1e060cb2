"""
Key-value stores and the keys the login flow keeps in them.

The persistent store holds the session credential, the one-shot intended
redirect, the cached profile and (when state checking is on) the issued state
nonce. The tab-scoped store holds only the last processed authorization code.
"""

import hashlib
import json
import logging
from typing import Any, MutableMapping, Optional

from .protocol import KeyValueStore

logger = logging.getLogger(__name__)

# Persistent store keys
TOKEN_KEY = "github_token"
REDIRECT_KEY = "auth_redirect_path"
USER_CACHE_KEY = "auth_user"
STATE_NONCE_KEY = "oauth_state_nonce"

# Tab-scoped store key
PROCESSED_CODE_KEY = "oauth_processed_code"


def fingerprint(value: Optional[str]) -> str:
    """Short stable digest for logging codes and tokens without leaking them."""
    if not value:
        return "-"
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]


class MemoryStore:
    """Dict-backed store; used for tab-scoped state and in tests."""

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class MappingStore:
    """Adapter over a mutable mapping such as Starlette's request.session."""

    def __init__(self, mapping: MutableMapping[str, Any]):
        self._mapping = mapping

    def get(self, key: str) -> Optional[str]:
        value = self._mapping.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._mapping[key] = value

    def delete(self, key: str) -> None:
        self._mapping.pop(key, None)


def cache_user(store: KeyValueStore, user: dict) -> None:
    """Keep a copy of the verified profile next to the credential."""
    try:
        store.set(USER_CACHE_KEY, json.dumps(user, separators=(",", ":")))
    except (TypeError, ValueError):
        logger.warning("Profile is not JSON serializable; not caching it")


def cached_user(store: KeyValueStore) -> Optional[dict]:
    raw = store.get(USER_CACHE_KEY)
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class ProcessedCodeGuard:
    """
    Remembers the last authorization code submitted for exchange.

    Lives in the tab-scoped store so a remount or refresh of the callback view
    never exchanges the same code twice; the entry disappears with the tab.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    def seen(self, code: Optional[str]) -> bool:
        return bool(code) and self._store.get(PROCESSED_CODE_KEY) == code

    def remember(self, code: str) -> None:
        self._store.set(PROCESSED_CODE_KEY, code)
