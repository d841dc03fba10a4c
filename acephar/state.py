"""Process-wide bot state flags.

Holds the presence/automation toggles that many command handlers read
and a few owner commands flip. All mutation goes through named setter
operations; mutually exclusive flags are described once in
``EXCLUSIONS`` rather than at each call site.

State is memory-only and resets to all-off on every process start.

Key classes:
    BotFlag: Enum of every toggleable flag.
    ToggleResult: Outcome of a setter call (new value, changed, cleared).
    BotStateSnapshot: Immutable copy of all flags at one instant.
    BotState: The store itself.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Tuple

import structlog

logger = structlog.get_logger("acephar.state")


class BotFlag(str, Enum):
    """Toggleable process-wide flags."""
    ALWAYS_ONLINE = "always_online"
    AUTO_READ = "auto_read"
    AUTO_RECORDING = "auto_recording"
    AUTO_TYPING = "auto_typing"
    AUTO_STATUS_VIEW = "auto_status_view"
    PRIVATE_MODE = "private_mode"


# Enabling the key flag forces every listed flag off.
EXCLUSIONS: Mapping[BotFlag, Tuple[BotFlag, ...]] = {
    BotFlag.AUTO_TYPING: (BotFlag.AUTO_RECORDING,),
    BotFlag.AUTO_RECORDING: (BotFlag.AUTO_TYPING,),
}


@dataclass(frozen=True)
class ToggleResult:
    """Result of setting a flag.

    Attributes:
        flag: The flag that was set.
        value: The flag's value after the call.
        changed: False when the flag was already in the requested state.
        cleared: Flags that were switched off by mutual exclusion.
    """
    flag: BotFlag
    value: bool
    changed: bool
    cleared: Tuple[BotFlag, ...] = ()


@dataclass(frozen=True)
class BotStateSnapshot:
    """Consistent copy of every flag, taken under the store lock."""
    always_online: bool = False
    auto_read: bool = False
    auto_recording: bool = False
    auto_typing: bool = False
    auto_status_view: bool = False
    private_mode: bool = False


class BotState:
    """Store for the process-wide flags.

    Every compound update (set one flag, clear its exclusions) runs
    under a single lock, so no reader can observe both auto-typing and
    auto-recording enabled at once.

    Args:
        exclusions: Transition table of flag -> flags it clears.
            Defaults to ``EXCLUSIONS``.
    """

    def __init__(self, exclusions: Mapping[BotFlag, Tuple[BotFlag, ...]] = EXCLUSIONS):
        self._flags: Dict[BotFlag, bool] = {flag: False for flag in BotFlag}
        self._exclusions = dict(exclusions)
        self._lock = threading.Lock()

    def get(self, flag: BotFlag) -> bool:
        """Read a single flag."""
        with self._lock:
            return self._flags[BotFlag(flag)]

    def snapshot(self) -> BotStateSnapshot:
        """Read every flag at once."""
        with self._lock:
            return BotStateSnapshot(**{flag.value: value for flag, value in self._flags.items()})

    def set(self, flag: BotFlag, value: bool) -> ToggleResult:
        """Set ``flag`` to ``value`` and apply the exclusion table.

        Disabling a flag never touches other flags. Enabling one clears
        every flag listed for it in the exclusion table, even when the
        flag itself was already on.
        """
        flag = BotFlag(flag)
        value = bool(value)
        with self._lock:
            changed = self._flags[flag] != value
            self._flags[flag] = value
            cleared = []
            if value:
                for other in self._exclusions.get(flag, ()):
                    if self._flags[other]:
                        self._flags[other] = False
                        cleared.append(other)

        result = ToggleResult(flag=flag, value=value, changed=changed, cleared=tuple(cleared))
        if changed or cleared:
            logger.info(
                "bot_flag_set",
                flag=flag.value,
                value=value,
                cleared=[c.value for c in cleared],
            )
        return result

    # --- Named toggles ---

    def set_always_online(self, value: bool) -> ToggleResult:
        return self.set(BotFlag.ALWAYS_ONLINE, value)

    def set_auto_read(self, value: bool) -> ToggleResult:
        return self.set(BotFlag.AUTO_READ, value)

    def set_auto_recording(self, value: bool) -> ToggleResult:
        """Set auto-recording; enabling it turns auto-typing off."""
        return self.set(BotFlag.AUTO_RECORDING, value)

    def set_auto_typing(self, value: bool) -> ToggleResult:
        """Set auto-typing; enabling it turns auto-recording off."""
        return self.set(BotFlag.AUTO_TYPING, value)

    def set_auto_status_view(self, value: bool) -> ToggleResult:
        return self.set(BotFlag.AUTO_STATUS_VIEW, value)

    def set_private_mode(self, value: bool) -> ToggleResult:
        return self.set(BotFlag.PRIVATE_MODE, value)

    # --- Read-only accessors ---

    @property
    def is_always_online(self) -> bool:
        return self.get(BotFlag.ALWAYS_ONLINE)

    @property
    def is_auto_read(self) -> bool:
        return self.get(BotFlag.AUTO_READ)

    @property
    def is_auto_recording(self) -> bool:
        return self.get(BotFlag.AUTO_RECORDING)

    @property
    def is_auto_typing(self) -> bool:
        return self.get(BotFlag.AUTO_TYPING)

    @property
    def is_auto_status_view_enabled(self) -> bool:
        return self.get(BotFlag.AUTO_STATUS_VIEW)

    @property
    def is_private_mode(self) -> bool:
        return self.get(BotFlag.PRIVATE_MODE)
