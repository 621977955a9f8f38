"""Grace-period soft delete and recovery of accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import math

from sqlalchemy.orm import Session

from accounts.core.config import Settings
from accounts.core.errors import Ok, Reason, Result, fail
from accounts.core.identity import AuthenticatedUser
from accounts.core.utils import Clock, as_utc, utc_now
from accounts.db.session import Database
from accounts.domain.account import AccountSnapshot
from accounts.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class ScheduledDeletion:
    user_id: int
    scheduled_at: datetime
    days_remaining: int

    def to_dict(self) -> dict:
        return {
            "scheduledDeletionAt": self.scheduled_at.isoformat(),
            "daysRemaining": self.days_remaining,
        }


def days_until(scheduled_at: datetime, now: datetime) -> int:
    seconds = (as_utc(scheduled_at) - as_utc(now)).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


@dataclass
class DeletionService:
    """
    Schedules account deletion after a grace period and reverses it on request.

    Scheduling marks the account inactive and records a pending deletion; both
    writes commit together. Uploaded assets are left alone: removing them is the
    job of the purge process that runs once the grace period is over.
    """

    settings: Settings
    database: Database
    clock: Clock = utc_now

    def __post_init__(self):
        self.repository = SQLRepository(self.database)

    def _now(self) -> datetime:
        return as_utc(self.clock())

    def schedule_soft_delete(self, identity: AuthenticatedUser) -> Result[ScheduledDeletion]:
        """
        Schedule deletion of the caller's account.

        Calling it again while a deletion is already pending changes nothing and
        returns the existing schedule.
        """
        user_id = identity.user_id

        def work(session: Session) -> Result[ScheduledDeletion]:
            now = self._now()
            account = self.repository.lock_account(session, user_id)
            if account is None:
                return fail(Reason.ACCOUNT_NOT_FOUND, "Account not found")
            existing = self.repository.get_pending_deletion(session, user_id)
            if existing is not None:
                return Ok(ScheduledDeletion(user_id, as_utc(existing.scheduled_at), days_until(existing.scheduled_at, now)))
            scheduled_at = now + self.settings.deletion_grace_period
            self.repository.insert_pending_deletion(
                session,
                user_id=user_id,
                requested_by=user_id,
                scheduled_at=scheduled_at,
                now=now,
            )
            self.repository.set_account_active(session, user_id, False, now)
            return Ok(ScheduledDeletion(user_id, scheduled_at, days_until(scheduled_at, now)))

        result = self.database.run_in_transaction(work)
        if result.ok:
            logger.info("Account %s scheduled for deletion at %s", user_id, result.value.scheduled_at.isoformat())
        return result

    def recover_account(self, identity: AuthenticatedUser) -> Result[AccountSnapshot]:
        user_id = identity.user_id

        def work(session: Session) -> Result[AccountSnapshot]:
            now = self._now()
            account = self.repository.lock_account(session, user_id)
            pending = self.repository.get_pending_deletion(session, user_id)
            if account is None or pending is None:
                return fail(Reason.NOT_SCHEDULED, "This account is not scheduled for deletion")
            if as_utc(pending.scheduled_at) <= now:
                return fail(Reason.GRACE_PERIOD_EXPIRED, "The grace period has expired; the account cannot be recovered")
            if not self.repository.delete_pending_deletion(session, pending.id):
                return fail(Reason.NOT_SCHEDULED, "This account is not scheduled for deletion")
            self.repository.set_account_active(session, user_id, True, now)
            session.refresh(account)
            return Ok(AccountSnapshot.of(account))

        result = self.database.run_in_transaction(work)
        if result.ok:
            logger.info("Account %s recovered", user_id)
        return result
