"""Read-only view of an account handed back to callers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from accounts.core.utils import as_utc


@dataclass(frozen=True)
class AccountSnapshot:
    id: int
    email: str
    first_name: str
    last_name: str
    state: str
    is_active: bool
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def of(cls, account) -> "AccountSnapshot":
        return cls(
            id=account.id,
            email=account.email,
            first_name=account.first_name or "",
            last_name=account.last_name or "",
            state=account.state,
            is_active=bool(account.is_active),
            created_at=as_utc(account.created_at) if account.created_at else None,
            updated_at=as_utc(account.updated_at) if account.updated_at else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "state": self.state,
            "isActive": self.is_active,
        }
