"""Per-(email, IP) throttling of ticket submissions.

Checking and recording are separate calls: :meth:`can_submit` never consumes
an attempt, only :meth:`record_submission` (made after the ticket is stored)
does. Handlers run on a threadpool, so the ticket handler wraps both calls in
:meth:`SubmissionRateLimiter.reserve`, which serializes requests for the same
(email, IP) pair from the check until the record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock

from helpdesk.core.exceptions import RateLimitedError
from helpdesk.core.settings import settings
from helpdesk.services.cooldown import Clock, CooldownCounter, CounterEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only snapshot of a submitter's allowance."""

    remaining_attempts: int
    is_blocked: bool
    cooldown_remaining: float


def submission_key(email: str, ip: str) -> str:
    return f"{email.strip().lower()}|{ip}"


@dataclass
class _KeyLock:
    lock: Lock = field(default_factory=Lock)
    holders: int = 0


class SubmissionRateLimiter:
    """Allow at most ``max_attempts`` ticket submissions per window per (email, IP)."""

    def __init__(
        self,
        *,
        max_attempts: int | None = None,
        window_seconds: float | None = None,
        cooldown_seconds: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        kwargs = {"clock": clock} if clock is not None else {}
        self._windows = CooldownCounter(
            threshold=(
                max_attempts if max_attempts is not None else settings.submission_max_attempts
            ),
            window_seconds=(
                window_seconds
                if window_seconds is not None
                else settings.submission_window_seconds
            ),
            cooldown_seconds=(
                cooldown_seconds
                if cooldown_seconds is not None
                else settings.submission_cooldown_seconds
            ),
            **kwargs,
        )
        self._lock = Lock()
        self._key_locks: dict[str, _KeyLock] = {}

    @property
    def max_attempts(self) -> int:
        return self._windows.threshold

    def __len__(self) -> int:
        return len(self._windows)

    @contextmanager
    def reserve(self, email: str, ip: str) -> Iterator[None]:
        """Hold the (email, IP) pair exclusively for a check-then-record sequence."""
        key = submission_key(email, ip)
        with self._lock:
            slot = self._key_locks.setdefault(key, _KeyLock())
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._lock:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._key_locks[key]

    def can_submit(self, email: str, ip: str) -> bool:
        """Return True if the pair may submit; raise :class:`RateLimitedError` otherwise."""
        with self._lock:
            now = self._windows.now()
            self._windows.sweep(self._is_idle, now)
            key = submission_key(email, ip)

            window = self._windows.get(key)
            if window is None:
                self._windows.entry(key, now)
                return True

            if window.blocked:
                if not self._windows.block_lapsed(window, now):
                    remaining = self._windows.cooldown_remaining(window, now)
                    logger.warning(
                        "submission_rejected_while_blocked",
                        extra={"ip": ip, "remaining_seconds": round(remaining, 1)},
                    )
                    raise RateLimitedError(remaining)
                self._windows.unblock(window, now)

            if self._windows.window_expired(window, now):
                self._windows.reset_window(window, now)

            if window.count >= self._windows.threshold:
                self._windows.block(window, now)
                logger.warning(
                    "submission_rate_limited",
                    extra={"ip": ip, "attempts": window.count},
                )
                raise RateLimitedError(self._windows.cooldown_seconds)

            return True

    def record_submission(self, email: str, ip: str) -> None:
        """Count one successful submission against the pair."""
        with self._lock:
            now = self._windows.now()
            window = self._windows.entry(submission_key(email, ip), now)
            if self._windows.window_expired(window, now):
                self._windows.reset_window(window, now)
            self._windows.increment(window, now)

    def get_rate_limit_status(self, email: str, ip: str) -> RateLimitStatus:
        """Describe the pair's allowance without mutating or sweeping state."""
        with self._lock:
            now = self._windows.now()
            window = self._windows.get(submission_key(email, ip))
            if window is None:
                return RateLimitStatus(
                    remaining_attempts=self._windows.threshold,
                    is_blocked=False,
                    cooldown_remaining=0.0,
                )

            if self._windows.is_blocked(window, now):
                return RateLimitStatus(
                    remaining_attempts=0,
                    is_blocked=True,
                    cooldown_remaining=self._windows.cooldown_remaining(window, now),
                )

            if window.blocked or self._windows.window_expired(window, now):
                remaining = self._windows.threshold
            else:
                remaining = self._windows.remaining(window)
            return RateLimitStatus(
                remaining_attempts=remaining,
                is_blocked=False,
                cooldown_remaining=0.0,
            )

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def _is_idle(self, window: CounterEntry, now: float) -> bool:
        return now - window.last_event > self._windows.cooldown_seconds


_rate_limiter = SubmissionRateLimiter()


def get_rate_limiter() -> SubmissionRateLimiter:
    """Return the process-wide submission rate limiter."""
    return _rate_limiter
