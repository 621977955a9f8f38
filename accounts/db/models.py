"""SQLAlchemy models for accounts, verification tokens and pending deletions."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import relationship

from .session import Base

ACCOUNT_STATES = ("pending", "active", "suspended")
ENTITY_ACCOUNT = "account"


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    state = Column(Enum(*ACCOUNT_STATES, name="account_state"), nullable=False, default="pending")
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    tokens = relationship("VerificationToken", back_populates="account")


class VerificationToken(Base):
    __tablename__ = "email_verification_tokens"
    __table_args__ = (
        # At most one live token per account, enforced by the store itself.
        Index(
            "uq_email_verification_tokens_live_user",
            "user_id",
            unique=True,
            postgresql_where=text("used = false"),
            sqlite_where=text("used = 0"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    resend_count = Column(Integer, nullable=False, default=0)
    last_resend_at = Column(DateTime(timezone=True), nullable=True)

    account = relationship("Account", back_populates="tokens")


class PendingDeletion(Base):
    __tablename__ = "pending_deletions"
    __table_args__ = (UniqueConstraint("entity_type", "entity_id", name="uq_pending_deletions_entity"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(32), nullable=False, default=ENTITY_ACCOUNT)
    entity_id = Column(Integer, nullable=False)
    requested_by = Column(Integer, nullable=False)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
