"""Expiring per-key counters with a cooldown once a threshold is reached.

Both request throttles (CAPTCHA failures per IP and ticket submissions per
email/IP pair) are built on :class:`CooldownCounter`. Entries live in process
memory only and expire lazily: nothing is evicted until a later call sweeps
the map.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass

Clock = Callable[[], float]


@dataclass
class CounterEntry:
    """Mutable counting state tracked for a single key."""

    count: int
    window_start: float
    last_event: float
    blocked: bool = False
    blocked_at: float | None = None


class CooldownCounter:
    """Count events per key inside a window and block keys that hit ``threshold``.

    Args:
        threshold: Event count at which a key becomes blocked.
        window_seconds: Age after which the count starts over.
        cooldown_seconds: How long a blocked key stays blocked.
        sliding_window: Measure the window from the most recent event instead
            of from the start of the window.
        clock: Source of wall-clock seconds; injectable for tests.
    """

    def __init__(
        self,
        *,
        threshold: int,
        window_seconds: float,
        cooldown_seconds: float,
        sliding_window: bool = False,
        clock: Clock = time.time,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.window_seconds = float(window_seconds)
        self.cooldown_seconds = float(cooldown_seconds)
        self.sliding_window = sliding_window
        self._clock = clock
        self._entries: dict[str, CounterEntry] = {}

    def now(self) -> float:
        return self._clock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, key: str) -> CounterEntry | None:
        return self._entries.get(key)

    def entry(self, key: str, now: float) -> CounterEntry:
        """Return the entry for ``key``, creating an empty one if absent."""
        entry = self._entries.get(key)
        if entry is None:
            entry = CounterEntry(count=0, window_start=now, last_event=now)
            self._entries[key] = entry
        return entry

    def discard(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def window_expired(self, entry: CounterEntry, now: float) -> bool:
        anchor = entry.last_event if self.sliding_window else entry.window_start
        return now - anchor > self.window_seconds

    def reset_window(self, entry: CounterEntry, now: float) -> None:
        entry.count = 0
        entry.window_start = now

    def increment(self, entry: CounterEntry, now: float) -> CounterEntry:
        entry.count += 1
        entry.last_event = now
        return entry

    def block(self, entry: CounterEntry, now: float) -> None:
        entry.blocked = True
        entry.blocked_at = now

    def unblock(self, entry: CounterEntry, now: float) -> None:
        entry.blocked = False
        entry.blocked_at = None
        self.reset_window(entry, now)

    def block_lapsed(self, entry: CounterEntry, now: float) -> bool:
        """Return True if ``entry`` was blocked and its cooldown is over."""
        if not entry.blocked or entry.blocked_at is None:
            return False
        return now - entry.blocked_at > self.cooldown_seconds

    def is_blocked(self, entry: CounterEntry, now: float) -> bool:
        return entry.blocked and not self.block_lapsed(entry, now)

    def cooldown_remaining(self, entry: CounterEntry, now: float) -> float:
        """Seconds left before a blocked entry is released (0.0 if not blocked)."""
        if not self.is_blocked(entry, now) or entry.blocked_at is None:
            return 0.0
        return max(0.0, self.cooldown_seconds - (now - entry.blocked_at))

    def remaining(self, entry: CounterEntry) -> int:
        return max(0, self.threshold - entry.count)

    def sweep(self, is_stale: Callable[[CounterEntry, float], bool], now: float) -> int:
        """Delete every entry for which ``is_stale(entry, now)`` holds.

        Returns:
            Number of entries removed.
        """
        stale = [key for key, entry in self._entries.items() if is_stale(entry, now)]
        for key in stale:
            del self._entries[key]
        return len(stale)
