"""Account creation and lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging

from sqlalchemy.orm import Session

from accounts.core.errors import Err, Ok, Reason, Result, StorageError, fail
from accounts.core.utils import as_utc
from accounts.domain.account import AccountSnapshot
from accounts.services.verification_service import VerificationService

logger = logging.getLogger(__name__)


@dataclass
class RegisterResult:
    account: AccountSnapshot
    email_sent: bool


@dataclass
class AccountService:
    """Creates pending accounts and kicks off their first verification email."""

    verification: VerificationService

    def __post_init__(self):
        self.database = self.verification.database
        self.repository = self.verification.repository

    def get_account(self, user_id: int) -> Optional[AccountSnapshot]:
        account = self.repository.get_account(user_id)
        return AccountSnapshot.of(account) if account else None

    def register(self, email: str, first_name: str = "", last_name: str = "") -> Result[RegisterResult]:
        raw_email = (email or "").strip().lower()

        def work(session: Session) -> Result[AccountSnapshot]:
            if self.repository.get_account_by_email(session, raw_email) is not None:
                return fail(Reason.EMAIL_TAKEN, "An account with this email already exists")
            now = as_utc(self.verification.clock())
            account = self.repository.create_account(
                session, raw_email, (first_name or "").strip(), (last_name or "").strip(), now
            )
            return Ok(AccountSnapshot.of(account))

        created = self.database.run_in_transaction(work)
        if isinstance(created, Err):
            return created
        account = created.value
        logger.info("Registered account %s", account.id)

        # The account exists from here on; a failed first email must not undo it.
        email_sent = False
        try:
            issued = self.verification.issue_and_notify(account.id)
        except StorageError:
            logger.exception("Could not issue the first verification token for account %s", account.id)
        else:
            if isinstance(issued, Err):
                logger.warning("First verification token not issued for account %s: %s", account.id, issued.reason.value)
            else:
                email_sent = issued.value.email_sent
        return Ok(RegisterResult(account=account, email_sent=email_sent))
