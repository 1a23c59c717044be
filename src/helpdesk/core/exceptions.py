"""Help-desk error hierarchy."""

from __future__ import annotations

import math


class HelpdeskError(Exception):
    """Base exception for all help-desk errors."""


class TicketValidationError(HelpdeskError):
    """Submitted ticket data failed validation.

    ``errors`` holds one ``{"field": ..., "message": ...}`` entry per
    offending field.
    """

    def __init__(self, errors: list[dict[str, str]], message: str = "Validation error") -> None:
        super().__init__(message)
        self.errors = errors


class CaptchaInvalidError(HelpdeskError):
    """CAPTCHA missing, expired, already used, or wrong."""


class TooManyAttemptsError(HelpdeskError):
    """A throttle tripped; the caller must wait ``remaining_minutes``."""

    def __init__(self, remaining_seconds: float, message: str | None = None) -> None:
        self.remaining_seconds = max(0.0, float(remaining_seconds))
        self.remaining_minutes = max(1, math.ceil(self.remaining_seconds / 60))
        super().__init__(
            message
            or (
                "Too many failed attempts. "
                f"Please try again in {self.remaining_minutes} minutes."
            )
        )


class RateLimitedError(TooManyAttemptsError):
    """Ticket submissions for an (email, IP) pair are in cooldown."""

    def __init__(self, remaining_seconds: float) -> None:
        minutes = max(1, math.ceil(max(0.0, float(remaining_seconds)) / 60))
        super().__init__(
            remaining_seconds,
            f"Too many ticket submissions. Please try again in {minutes} minutes.",
        )
        self.cooldown_remaining = self.remaining_seconds


class NotFoundError(HelpdeskError):
    """Requested ticket or user does not exist."""


class PersistenceError(HelpdeskError):
    """Database operation failed."""
