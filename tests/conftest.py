from __future__ import annotations

from datetime import datetime, timedelta, timezone
import re
import sys
from pathlib import Path

import pytest

# Make the accounts package importable when running the tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from accounts.core.config import Settings  # noqa: E402
from accounts.core.errors import Ok  # noqa: E402
from accounts.core.mailer import OutboundMessage  # noqa: E402
from accounts.db.session import Database  # noqa: E402
from accounts.repositories.sql_repository import SQLRepository  # noqa: E402
from accounts.services.account_service import AccountService  # noqa: E402
from accounts.services.deletion_service import DeletionService  # noqa: E402
from accounts.services.verification_service import VerificationService  # noqa: E402

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
TOKEN_IN_URL = re.compile(r"token=([0-9a-f]{64})")


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingDispatcher:
    def __init__(self):
        self.messages: list[OutboundMessage] = []
        self.result = True
        self.error: Exception | None = None

    def dispatch(self, message: OutboundMessage) -> bool:
        if self.error is not None:
            raise self.error
        self.messages.append(message)
        return self.result

    def last_token(self) -> str:
        match = TOKEN_IN_URL.search(self.messages[-1].text_body or "")
        assert match, "no token link in the last message"
        return match.group(1)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        public_base_url="https://app.example.test",
        email_verification_ttl_seconds=3600,
        max_resend_attempts=3,
        resend_cooldown_seconds=120,
        deletion_grace_days=30,
        storage_retry_attempts=2,
    )


@pytest.fixture()
def database(settings):
    """Temporary SQLite database, disposed after each test so the file is not left locked."""
    db = Database(settings)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def repo(database) -> SQLRepository:
    return SQLRepository(database)


@pytest.fixture()
def verification(settings, database, dispatcher, clock) -> VerificationService:
    return VerificationService(settings, database, dispatcher, clock)


@pytest.fixture()
def deletion(settings, database, clock) -> DeletionService:
    return DeletionService(settings, database, clock)


@pytest.fixture()
def account_service(verification) -> AccountService:
    return AccountService(verification)


@pytest.fixture()
def make_account(database, repo, clock):
    def _make(email: str = "ana@example.com", first_name: str = "Ana", last_name: str = "Lopez") -> int:
        def work(session):
            return Ok(repo.create_account(session, email, first_name, last_name, clock()).id)

        return database.run_in_transaction(work).value

    return _make
