"""CAPTCHA and submission-throttle schemas."""

from pydantic import Field

from .common import ApiModel


class CaptchaResponse(ApiModel):
    """Challenge handed to a client before it submits a ticket."""

    captcha_id: str = Field(..., description="Opaque id to echo back with the answer")
    captcha_code: str | None = Field(
        None,
        description="Expected answer; omitted when the code is delivered out of band",
    )


class RateLimitStatusResponse(ApiModel):
    """Remaining submission allowance for the caller's (email, IP) pair."""

    remaining_attempts: int
    is_blocked: bool
    cooldown_remaining: float = Field(..., description="Seconds until the cooldown ends")
