"""
State payload encoding and post-login destination resolution.

The state round-tripped through the provider is the URL-quoted JSON object
{"redirect": <path>, "nonce": <random>}. The destination after a callback is
taken, in order, from that payload, from the intended redirect persisted at
login (consumed on use), or from the configured default.
"""

import json
import logging
from typing import Optional
from urllib.parse import quote, unquote

from .protocol import KeyValueStore
from .storage import REDIRECT_KEY

logger = logging.getLogger(__name__)


def is_local_path(path: object) -> bool:
    """Only same-origin absolute paths are acceptable redirect targets."""
    return (
        isinstance(path, str)
        and path.startswith("/")
        and not path.startswith("//")
        and "\\" not in path
    )


def encode_state(redirect_path: str, nonce: Optional[str] = None) -> str:
    """Serialize the redirect (and nonce) into a URL-safe state string."""
    payload = {"redirect": redirect_path}
    if nonce:
        payload["nonce"] = nonce
    return quote(json.dumps(payload, separators=(",", ":")), safe="")


def decode_state(state: Optional[str]) -> Optional[dict]:
    """Inverse of encode_state; None when state is absent or not a JSON object."""
    if not state:
        return None
    try:
        data = json.loads(unquote(state))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class RedirectResolver:
    """Picks the single post-login destination from competing hints."""

    def __init__(self, store: KeyValueStore, default: str):
        self.store = store
        self.default = default

    def resolve(self, state: Optional[str]) -> str:
        # the persisted value is single-use whichever source wins
        stored = self.store.get(REDIRECT_KEY)
        if stored is not None:
            self.store.delete(REDIRECT_KEY)

        payload = decode_state(state)
        if payload is not None:
            target = payload.get("redirect")
            if is_local_path(target):
                return target
            if target:
                logger.warning("Ignoring non-local redirect in state")

        if stored is not None:
            if is_local_path(stored):
                return stored
            logger.warning("Ignoring non-local persisted redirect")

        return self.default
