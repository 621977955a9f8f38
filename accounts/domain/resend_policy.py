"""Resend policy for verification emails: attempt limit plus cooldown."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
import math

from accounts.core.config import Settings
from accounts.core.utils import as_utc


class DenyReason(str, Enum):
    LIMIT_EXCEEDED = "limit_exceeded"
    COOLDOWN_ACTIVE = "cooldown_active"


@dataclass(frozen=True)
class ResendPolicy:
    max_attempts: int = 3
    cooldown: timedelta = timedelta(minutes=2)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResendPolicy":
        return cls(max_attempts=settings.max_resend_attempts, cooldown=settings.resend_cooldown)


@dataclass(frozen=True)
class ResendDecision:
    allowed: bool
    reason: DenyReason | None = None
    retry_after: timedelta | None = None

    @property
    def retry_after_seconds(self) -> int | None:
        if self.retry_after is None:
            return None
        return max(1, math.ceil(self.retry_after.total_seconds()))


ALLOW = ResendDecision(allowed=True)


def evaluate_resend(
    resend_count: int,
    last_resend_at: datetime | None,
    now: datetime,
    policy: ResendPolicy,
) -> ResendDecision:
    """Decide whether another verification email may be sent right now."""
    if resend_count >= policy.max_attempts:
        return ResendDecision(allowed=False, reason=DenyReason.LIMIT_EXCEEDED)
    if last_resend_at is None:
        return ALLOW
    elapsed = as_utc(now) - as_utc(last_resend_at)
    if elapsed < policy.cooldown:
        return ResendDecision(allowed=False, reason=DenyReason.COOLDOWN_ACTIVE, retry_after=policy.cooldown - elapsed)
    return ALLOW


def remaining_attempts(resend_count: int, policy: ResendPolicy) -> int:
    return max(0, policy.max_attempts - resend_count)
