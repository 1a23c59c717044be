"""CAPTCHA challenge issuance and validation with per-IP failure throttling."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from threading import Lock

from helpdesk.core.exceptions import TooManyAttemptsError
from helpdesk.core.settings import settings
from helpdesk.services.cooldown import Clock, CooldownCounter, CounterEntry

logger = logging.getLogger(__name__)

CODE_LENGTH = 6


@dataclass(frozen=True)
class CaptchaChallenge:
    """A single-use challenge handed to a client."""

    id: str
    code: str
    issued_at: float
    issuing_ip: str | None


@dataclass(frozen=True)
class CaptchaIssue:
    """Values returned to the caller of :meth:`CaptchaStore.issue`."""

    challenge_id: str
    code: str


def _generate_code() -> str:
    low = 10 ** (CODE_LENGTH - 1)
    return str(low + secrets.randbelow(9 * low))


class CaptchaStore:
    """In-memory store of outstanding challenges and per-IP penalties.

    Challenges are consumed by their first validation attempt, successful or
    not. Each failed attempt counts against the requesting IP; once an IP
    reaches ``max_failures`` it is blocked for ``block_seconds`` regardless of
    whether later answers are correct. Expired challenges and lapsed penalties
    are swept at the start of every call.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float | None = None,
        max_failures: int | None = None,
        block_seconds: float | None = None,
        failure_reset_seconds: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.ttl_seconds = float(
            ttl_seconds if ttl_seconds is not None else settings.captcha_ttl_seconds
        )
        kwargs = {"clock": clock} if clock is not None else {}
        self._penalties = CooldownCounter(
            threshold=(
                max_failures
                if max_failures is not None
                else settings.captcha_max_failures_per_ip
            ),
            window_seconds=(
                failure_reset_seconds
                if failure_reset_seconds is not None
                else settings.captcha_failure_reset_seconds
            ),
            cooldown_seconds=(
                block_seconds if block_seconds is not None else settings.captcha_block_seconds
            ),
            sliding_window=True,
            **kwargs,
        )
        self._challenges: dict[str, CaptchaChallenge] = {}
        self._lock = Lock()

    @property
    def max_failures(self) -> int:
        return self._penalties.threshold

    @property
    def block_seconds(self) -> float:
        return self._penalties.cooldown_seconds

    def __len__(self) -> int:
        return len(self._challenges)

    def issue(self, requesting_ip: str | None) -> CaptchaIssue:
        """Create a new challenge. Issuance is never throttled."""
        with self._lock:
            now = self._penalties.now()
            self._cleanup(now)
            challenge = CaptchaChallenge(
                id=secrets.token_hex(32),
                code=_generate_code(),
                issued_at=now,
                issuing_ip=requesting_ip,
            )
            self._challenges[challenge.id] = challenge
            return CaptchaIssue(challenge_id=challenge.id, code=challenge.code)

    def validate(self, challenge_id: str, submitted_code: str, requesting_ip: str) -> bool:
        """Consume ``challenge_id`` and report whether ``submitted_code`` matches.

        Raises:
            TooManyAttemptsError: If ``requesting_ip`` is blocked, or if this
                failure is the one that blocks it.
        """
        with self._lock:
            now = self._penalties.now()
            self._cleanup(now)

            penalty = self._penalties.get(requesting_ip)
            if penalty is not None and self._penalties.is_blocked(penalty, now):
                remaining = self._penalties.cooldown_remaining(penalty, now)
                logger.warning(
                    "captcha_rejected_while_blocked",
                    extra={"ip": requesting_ip, "remaining_seconds": round(remaining, 1)},
                )
                raise TooManyAttemptsError(remaining)

            challenge = self._challenges.pop(challenge_id, None)
            if challenge is None:
                self._record_failure(requesting_ip, now)
                return False

            if challenge.code != submitted_code:
                self._record_failure(requesting_ip, now)
                return False

            self._penalties.discard(requesting_ip)
            return True

    def failure_count(self, ip: str) -> int:
        """Return the current consecutive failure count for ``ip``."""
        with self._lock:
            penalty = self._penalties.get(ip)
            return penalty.count if penalty is not None else 0

    def is_blocked(self, ip: str) -> bool:
        with self._lock:
            penalty = self._penalties.get(ip)
            return penalty is not None and self._penalties.is_blocked(
                penalty, self._penalties.now()
            )

    def clear(self) -> None:
        with self._lock:
            self._challenges.clear()
            self._penalties.clear()

    def _record_failure(self, ip: str, now: float) -> None:
        penalty = self._penalties.entry(ip, now)
        if self._penalties.window_expired(penalty, now):
            self._penalties.reset_window(penalty, now)
        self._penalties.increment(penalty, now)

        if penalty.count >= self._penalties.threshold:
            self._penalties.block(penalty, now)
            logger.warning(
                "captcha_ip_blocked",
                extra={"ip": ip, "failures": penalty.count},
            )
            raise TooManyAttemptsError(self._penalties.cooldown_seconds)

        logger.warning("captcha_failure", extra={"ip": ip, "failures": penalty.count})

    def _penalty_is_stale(self, penalty: CounterEntry, now: float) -> bool:
        if penalty.blocked:
            return self._penalties.block_lapsed(penalty, now)
        return self._penalties.window_expired(penalty, now)

    def _cleanup(self, now: float) -> None:
        expired = [
            key
            for key, challenge in self._challenges.items()
            if now - challenge.issued_at > self.ttl_seconds
        ]
        for key in expired:
            del self._challenges[key]
        self._penalties.sweep(self._penalty_is_stale, now)


_captcha_store = CaptchaStore()


def get_captcha_store() -> CaptchaStore:
    """Return the process-wide CAPTCHA store."""
    return _captcha_store
