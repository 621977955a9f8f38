"""
Outcome types shared by the lifecycle services.

Expected business outcomes (unknown token, expired token, rate limits...) are
returned as ``Err(DomainError)`` values so callers branch on the reason code.
Only storage faults are raised, as ``StorageError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STATE_CONFLICT = "state_conflict"
    RATE_LIMITED = "rate_limited"


class Reason(str, Enum):
    """Stable reason codes surfaced to callers."""

    MISSING_TOKEN = "missing_token"
    NOT_FOUND = "not_found"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"
    ALREADY_VERIFIED = "already_verified"
    EMAIL_TAKEN = "email_taken"
    TOKEN_ALREADY_ISSUED = "token_already_issued"
    RESEND_LIMIT_EXCEEDED = "resend_limit_exceeded"
    RESEND_COOLDOWN_ACTIVE = "resend_cooldown_active"
    NOT_SCHEDULED = "not_scheduled"
    GRACE_PERIOD_EXPIRED = "grace_period_expired"

    @property
    def kind(self) -> ErrorKind:
        return _REASON_KINDS[self]


_REASON_KINDS = {
    Reason.MISSING_TOKEN: ErrorKind.VALIDATION,
    Reason.NOT_FOUND: ErrorKind.NOT_FOUND,
    Reason.ACCOUNT_NOT_FOUND: ErrorKind.NOT_FOUND,
    Reason.NOT_SCHEDULED: ErrorKind.NOT_FOUND,
    Reason.ALREADY_USED: ErrorKind.STATE_CONFLICT,
    Reason.EXPIRED: ErrorKind.STATE_CONFLICT,
    Reason.ALREADY_VERIFIED: ErrorKind.STATE_CONFLICT,
    Reason.EMAIL_TAKEN: ErrorKind.STATE_CONFLICT,
    Reason.TOKEN_ALREADY_ISSUED: ErrorKind.STATE_CONFLICT,
    Reason.GRACE_PERIOD_EXPIRED: ErrorKind.STATE_CONFLICT,
    Reason.RESEND_LIMIT_EXCEEDED: ErrorKind.RATE_LIMITED,
    Reason.RESEND_COOLDOWN_ACTIVE: ErrorKind.RATE_LIMITED,
}


@dataclass(frozen=True)
class DomainError:
    reason: Reason
    message: str
    retry_after_seconds: int | None = None
    details: dict = field(default_factory=dict)

    @property
    def kind(self) -> ErrorKind:
        return self.reason.kind


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    error: DomainError
    ok: bool = field(default=False, init=False)

    @property
    def reason(self) -> Reason:
        return self.error.reason


Result = Union[Ok[T], Err]


def fail(reason: Reason, message: str, **kwargs) -> Err:
    return Err(DomainError(reason=reason, message=message, **kwargs))


class StorageError(Exception):
    """Raised when the store could not commit a transaction, even after retries."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message)
        self.message = message
