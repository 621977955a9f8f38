"""
Email verification tokens: issue, verify and resend.

Only the SHA-256 digest of a token is stored. Every paired write (consume +
activate, invalidate + insert) runs in one transaction through
``Database.run_in_transaction``; a partial unique index keeps at most one
unused token per account even under concurrent resends.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
import logging

from sqlalchemy.orm import Session

from accounts.core.config import Settings
from accounts.core.errors import Err, Ok, Reason, Result, fail
from accounts.core.identity import AuthenticatedUser
from accounts.core.mailer import NotificationDispatcher
from accounts.core.security import generate_token, hash_token
from accounts.core.utils import Clock, as_utc, utc_now
from accounts.db.session import Database
from accounts.domain.account import AccountSnapshot
from accounts.domain.resend_policy import DenyReason, ResendPolicy, evaluate_resend, remaining_attempts
from accounts.repositories.sql_repository import SQLRepository
from accounts.services.verification_email import render_verification_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    """A freshly issued token. ``token`` is the only copy of the plaintext."""

    user_id: int
    email: str
    first_name: str
    last_name: str
    token: str = field(repr=False)
    expires_at: datetime
    resend_count: int
    remaining_attempts: int
    email_sent: bool = False


@dataclass
class VerificationService:
    """Issues, verifies and resends email verification tokens."""

    settings: Settings
    database: Database
    dispatcher: NotificationDispatcher
    clock: Clock = utc_now

    def __post_init__(self):
        self.repository = SQLRepository(self.database)
        self.policy = ResendPolicy.from_settings(self.settings)

    # -------------------------------------- helpers --------------------------------------
    def _now(self) -> datetime:
        return as_utc(self.clock())

    def _new_token(self, session: Session, account, now: datetime, *, resend_count: int, last_resend_at) -> IssuedToken:
        plaintext = generate_token()
        expires_at = now + self.settings.token_ttl
        self.repository.insert_token(
            session,
            user_id=account.id,
            token_hash=hash_token(plaintext),
            now=now,
            expires_at=expires_at,
            resend_count=resend_count,
            last_resend_at=last_resend_at,
        )
        return IssuedToken(
            user_id=account.id,
            email=account.email,
            first_name=account.first_name or "",
            last_name=account.last_name or "",
            token=plaintext,
            expires_at=expires_at,
            resend_count=resend_count,
            remaining_attempts=remaining_attempts(resend_count, self.policy),
        )

    def _notify(self, issued: IssuedToken) -> IssuedToken:
        """Send the verification email. Failures are logged; the token stays valid and resendable."""
        message = render_verification_email(
            self.settings,
            to_email=issued.email,
            first_name=issued.first_name,
            last_name=issued.last_name,
            token=issued.token,
        )
        try:
            sent = bool(self.dispatcher.dispatch(message))
        except Exception:
            logger.exception("Verification email dispatch failed for user %s", issued.user_id)
            sent = False
        if not sent:
            logger.warning("Verification email for user %s was not sent", issued.user_id)
        return replace(issued, email_sent=sent)

    # -------------------------------------- issue --------------------------------------
    def issue_token(self, user_id: int) -> Result[IssuedToken]:
        def work(session: Session) -> Result[IssuedToken]:
            now = self._now()
            account = self.repository.lock_account(session, user_id)
            if account is None:
                return fail(Reason.ACCOUNT_NOT_FOUND, "Account not found")
            if account.state == "active":
                return fail(Reason.ALREADY_VERIFIED, "Account is already verified")
            if self.repository.get_latest_token(session, user_id) is not None:
                return fail(Reason.TOKEN_ALREADY_ISSUED, "A verification token was already issued; use resend")
            return Ok(self._new_token(session, account, now, resend_count=0, last_resend_at=None))

        result = self.database.run_in_transaction(work)
        if result.ok:
            logger.info("Issued verification token for user %s", user_id)
        return result

    def issue_and_notify(self, user_id: int) -> Result[IssuedToken]:
        result = self.issue_token(user_id)
        if isinstance(result, Err):
            return result
        return Ok(self._notify(result.value))

    # -------------------------------------- verify --------------------------------------
    def verify_token(self, token: str | None) -> Result[AccountSnapshot]:
        token_value = (token or "").strip()
        if not token_value:
            return fail(Reason.MISSING_TOKEN, "Token is required")
        digest = hash_token(token_value)

        def work(session: Session) -> Result[AccountSnapshot]:
            now = self._now()
            entity = self.repository.get_token_by_hash(session, digest)
            if entity is None:
                return fail(Reason.NOT_FOUND, "Invalid verification token")
            # Expiry wins over the used flag: an expired token is always reported as expired.
            if now > as_utc(entity.expires_at):
                return fail(Reason.EXPIRED, "Verification token has expired")
            if entity.used:
                return fail(Reason.ALREADY_USED, "Verification token was already used")
            account = self.repository.lock_account(session, entity.user_id)
            if account is None:
                return fail(Reason.NOT_FOUND, "Invalid verification token")
            if not self.repository.consume_token(session, entity.id):
                return fail(Reason.ALREADY_USED, "Verification token was already used")
            scheduled = self.repository.get_pending_deletion(session, account.id) is not None
            self.repository.mark_account_verified(session, account.id, now, is_active=not scheduled)
            session.refresh(account)
            return Ok(AccountSnapshot.of(account))

        result = self.database.run_in_transaction(work)
        if result.ok:
            logger.info("Account %s verified", result.value.id)
        return result

    # -------------------------------------- resend --------------------------------------
    def resend_token(self, identity: AuthenticatedUser) -> Result[IssuedToken]:
        user_id = identity.user_id

        def work(session: Session) -> Result[IssuedToken]:
            now = self._now()
            account = self.repository.lock_account(session, user_id)
            if account is None:
                return fail(Reason.ACCOUNT_NOT_FOUND, "Account not found")
            if account.state == "active":
                return fail(Reason.ALREADY_VERIFIED, "Account is already verified")
            latest = self.repository.get_latest_token(session, user_id)
            previous_count = latest.resend_count if latest else 0
            last_resend_at = latest.last_resend_at if latest else None
            decision = evaluate_resend(previous_count, last_resend_at, now, self.policy)
            if decision.reason is DenyReason.LIMIT_EXCEEDED:
                return fail(
                    Reason.RESEND_LIMIT_EXCEEDED,
                    f"Resend limit of {self.policy.max_attempts} reached",
                )
            if decision.reason is DenyReason.COOLDOWN_ACTIVE:
                wait = decision.retry_after_seconds
                return fail(
                    Reason.RESEND_COOLDOWN_ACTIVE,
                    f"Wait {wait} seconds before requesting another email",
                    retry_after_seconds=wait,
                )
            superseded = self.repository.invalidate_live_tokens(session, user_id)
            if superseded:
                logger.debug("Superseded %d token(s) for user %s", superseded, user_id)
            return Ok(self._new_token(session, account, now, resend_count=previous_count + 1, last_resend_at=now))

        result = self.database.run_in_transaction(work)
        if result.ok:
            logger.info("Resent verification token for user %s (count=%s)", user_id, result.value.resend_count)
        else:
            logger.info("Resend denied for user %s: %s", user_id, result.reason.value)
        return result

    def resend_and_notify(self, identity: AuthenticatedUser) -> Result[IssuedToken]:
        result = self.resend_token(identity)
        if isinstance(result, Err):
            return result
        return Ok(self._notify(result.value))
