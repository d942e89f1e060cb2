"""
Per-tab client state for the web layer.

A browser tab is identified by a cookie without max-age, so it dies with the
browser session. Each tab gets its own AuthSession and its own tab-scoped
store (which holds the processed-code guard). Entries live in process memory.
"""

import secrets
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .session import AuthSession
from .storage import MemoryStore

TAB_COOKIE_NAME = "flow_tab"
MAX_TABS = 10_000


@dataclass
class Tab:
    session: AuthSession = field(default_factory=AuthSession)
    store: MemoryStore = field(default_factory=MemoryStore)


class TabRegistry:
    """Maps tab ids to Tab state; evicts the least recently used past max_tabs."""

    def __init__(self, max_tabs: int = MAX_TABS):
        self.max_tabs = max_tabs
        self._tabs: "OrderedDict[str, Tab]" = OrderedDict()

    def get(self, tab_id: Optional[str]) -> Tuple[str, Tab]:
        """Return (tab_id, tab), creating a fresh tab for unknown or missing ids."""
        if tab_id and tab_id in self._tabs:
            self._tabs.move_to_end(tab_id)
            return tab_id, self._tabs[tab_id]
        tab_id = secrets.token_urlsafe(16)
        tab = self._tabs[tab_id] = Tab()
        while len(self._tabs) > self.max_tabs:
            self._tabs.popitem(last=False)
        return tab_id, tab

    def __len__(self) -> int:
        return len(self._tabs)


class PendingNavigation:
    """Navigator that records the target so the view can answer with a redirect."""

    def __init__(self) -> None:
        self.url: Optional[str] = None
        self.delay: float = 0.0

    def navigate(self, url: str, delay: float = 0.0) -> None:
        self.url = url
        self.delay = delay
