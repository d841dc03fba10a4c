"""In-memory AFK ("away from keyboard") registry.

A user toggles their own AFK status: the first call records a reason
and timestamp, the next call removes the entry and hands it back so
the caller can report how long the user was away. Entries never expire
on their own and are lost on restart.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Union

import structlog

from .logging_config import mask_jid

logger = structlog.get_logger("acephar.state")

DEFAULT_AFK_REASON = "No reason provided."


@dataclass(frozen=True)
class AfkEntry:
    """A user's AFK declaration."""
    jid: str
    timestamp: datetime
    reason: str = DEFAULT_AFK_REASON

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        """Whole seconds since the entry was created."""
        now = now or datetime.now(self.timestamp.tzinfo)
        return max(0, int((now - self.timestamp).total_seconds()))


@dataclass(frozen=True)
class AfkActivated:
    """Returned when a toggle created a new entry."""
    timestamp: datetime
    reason: str


@dataclass(frozen=True)
class AfkDeactivated:
    """Returned when a toggle removed an existing entry."""
    previous_entry: AfkEntry


AfkToggleResult = Union[AfkActivated, AfkDeactivated]


class AfkRegistry:
    """Mapping of JID -> AfkEntry with toggle semantics.

    Args:
        clock: Callable returning the current aware datetime.
            Overridable for tests.
    """

    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._entries: Dict[str, AfkEntry] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def toggle(self, jid: str, reason: Optional[str] = None) -> AfkToggleResult:
        """Flip the AFK status of ``jid``.

        Args:
            jid: The user's JID.
            reason: Free text; blank or None falls back to the default.

        Returns:
            AfkActivated if an entry was created, AfkDeactivated carrying
            the removed entry otherwise.
        """
        with self._lock:
            previous = self._entries.pop(jid, None)
            if previous is None:
                entry = AfkEntry(
                    jid=jid,
                    timestamp=self._clock(),
                    reason=(reason or "").strip() or DEFAULT_AFK_REASON,
                )
                self._entries[jid] = entry

        if previous is not None:
            logger.info("afk_cleared", jid=mask_jid(jid))
            return AfkDeactivated(previous_entry=previous)

        logger.info("afk_set", jid=mask_jid(jid))
        return AfkActivated(timestamp=entry.timestamp, reason=entry.reason)

    def is_afk(self, jid: str) -> bool:
        with self._lock:
            return jid in self._entries

    def get(self, jid: str) -> Optional[AfkEntry]:
        with self._lock:
            return self._entries.get(jid)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
