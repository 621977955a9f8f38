"""High-level data access helpers backed by SQLAlchemy.

Methods that take a ``session`` run inside the caller's transaction; the
services group them so that paired writes commit together. The remaining
readers open a short-lived session of their own.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from accounts.db.models import ENTITY_ACCOUNT, Account, PendingDeletion, VerificationToken
from accounts.db.session import Database

# Bulk UPDATE/DELETE skip identity-map syncing; callers refresh what they read back.
NO_SYNC = {"synchronize_session": False}


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    def __init__(self, database: Database):
        self.database = database

    # -------------------------- accounts --------------------------
    def get_account(self, user_id: int) -> Optional[Account]:
        with self.database.session() as session:
            return session.get(Account, user_id)

    def get_account_by_email(self, session: Session, email: str) -> Optional[Account]:
        stmt = select(Account).where(Account.email == email)
        return session.execute(stmt).scalar_one_or_none()

    def create_account(self, session: Session, email: str, first_name: str, last_name: str, now: datetime) -> Account:
        account = Account(
            email=email,
            first_name=first_name,
            last_name=last_name,
            state="pending",
            is_active=False,
            created_at=now,
            updated_at=now,
        )
        session.add(account)
        session.flush()
        return account

    def lock_account(self, session: Session, user_id: int) -> Optional[Account]:
        """Load the account row, holding a row lock until the transaction ends where supported."""
        stmt = select(Account).where(Account.id == user_id).with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def mark_account_verified(self, session: Session, user_id: int, now: datetime, *, is_active: bool) -> None:
        stmt = (
            update(Account)
            .where(Account.id == user_id)
            .values(state="active", is_active=is_active, updated_at=now)
        )
        session.execute(stmt, execution_options=NO_SYNC)

    def set_account_active(self, session: Session, user_id: int, is_active: bool, now: datetime) -> None:
        stmt = update(Account).where(Account.id == user_id).values(is_active=is_active, updated_at=now)
        session.execute(stmt, execution_options=NO_SYNC)

    # -------------------------- verification tokens --------------------------
    def insert_token(
        self,
        session: Session,
        *,
        user_id: int,
        token_hash: str,
        now: datetime,
        expires_at: datetime,
        resend_count: int = 0,
        last_resend_at: datetime | None = None,
    ) -> VerificationToken:
        entity = VerificationToken(
            user_id=user_id,
            token_hash=token_hash,
            created_at=now,
            expires_at=expires_at,
            used=False,
            resend_count=resend_count,
            last_resend_at=last_resend_at,
        )
        session.add(entity)
        session.flush()
        return entity

    def get_token_by_hash(self, session: Session, token_hash: str) -> Optional[VerificationToken]:
        stmt = select(VerificationToken).where(VerificationToken.token_hash == token_hash)
        return session.execute(stmt).scalar_one_or_none()

    def get_latest_token(self, session: Session, user_id: int) -> Optional[VerificationToken]:
        stmt = (
            select(VerificationToken)
            .where(VerificationToken.user_id == user_id)
            .order_by(VerificationToken.created_at.desc(), VerificationToken.id.desc())
        )
        return session.execute(stmt).scalars().first()

    def consume_token(self, session: Session, token_id: int) -> bool:
        """Flip ``used`` only if it is still false; False means someone else got there first."""
        stmt = (
            update(VerificationToken)
            .where(VerificationToken.id == token_id, VerificationToken.used.is_(False))
            .values(used=True)
        )
        return session.execute(stmt, execution_options=NO_SYNC).rowcount == 1

    def invalidate_live_tokens(self, session: Session, user_id: int) -> int:
        stmt = (
            update(VerificationToken)
            .where(VerificationToken.user_id == user_id, VerificationToken.used.is_(False))
            .values(used=True)
        )
        return session.execute(stmt, execution_options=NO_SYNC).rowcount

    def list_tokens(self, user_id: int) -> list[VerificationToken]:
        with self.database.session() as session:
            stmt = (
                select(VerificationToken)
                .where(VerificationToken.user_id == user_id)
                .order_by(VerificationToken.id)
            )
            return list(session.execute(stmt).scalars().all())

    # -------------------------- pending deletions --------------------------
    def get_pending_deletion(self, session: Session, user_id: int) -> Optional[PendingDeletion]:
        stmt = select(PendingDeletion).where(
            PendingDeletion.entity_type == ENTITY_ACCOUNT,
            PendingDeletion.entity_id == user_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_pending_deletion(self, user_id: int) -> Optional[PendingDeletion]:
        with self.database.session() as session:
            return self.get_pending_deletion(session, user_id)

    def insert_pending_deletion(
        self,
        session: Session,
        *,
        user_id: int,
        requested_by: int,
        scheduled_at: datetime,
        now: datetime,
    ) -> PendingDeletion:
        entity = PendingDeletion(
            entity_type=ENTITY_ACCOUNT,
            entity_id=user_id,
            requested_by=requested_by,
            scheduled_at=scheduled_at,
            created_at=now,
        )
        session.add(entity)
        session.flush()
        return entity

    def delete_pending_deletion(self, session: Session, deletion_id: int) -> bool:
        stmt = delete(PendingDeletion).where(PendingDeletion.id == deletion_id)
        return session.execute(stmt, execution_options=NO_SYNC).rowcount == 1
