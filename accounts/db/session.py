"""Engine/session helpers for the SQL backend."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from accounts.core.config import Settings
from accounts.core.errors import Err, StorageError

Base = declarative_base()
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Serialization failures, lock timeouts and unique-index races all surface as one of these.
TRANSIENT_ERRORS = (OperationalError, IntegrityError)


def _configure_sqlite_connection(dbapi_connection, _record) -> None:
    # pysqlite defers BEGIN until the first write; take over transaction control.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn) -> None:
    # Take the write lock up front so a read-then-write transaction cannot interleave.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str) -> Engine:
    url = (url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to use the SQL backend.")
    engine = create_engine(url, future=True, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _configure_sqlite_connection)
        event.listen(engine, "begin", _begin_immediate)
    return engine


class Database:
    """Owns the engine and hands out sessions and transactions."""

    def __init__(self, settings: Settings, engine: Engine | None = None):
        self.settings = settings
        self.engine = engine or build_engine(settings.database_url)
        self._sessionmaker = sessionmaker(
            bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
        )

    @contextmanager
    def session(self) -> Iterator[Session]:
        session: Session = self._sessionmaker()
        try:
            yield session
        finally:
            session.close()

    def run_in_transaction(self, work: Callable[[Session], T]) -> T:
        """
        Run ``work`` in a single transaction and commit it.

        An ``Err`` result rolls the transaction back. Transient driver errors are
        retried up to ``storage_retry_attempts`` times and then raised as
        StorageError without the driver details.
        """
        attempts = self.settings.storage_retry_attempts
        for attempt in range(1, attempts + 1):
            session: Session = self._sessionmaker()
            try:
                result = work(session)
                if isinstance(result, Err):
                    session.rollback()
                else:
                    session.commit()
                return result
            except TRANSIENT_ERRORS as exc:
                session.rollback()
                logger.warning("Transaction attempt %d/%d failed: %s", attempt, attempts, exc.__class__.__name__)
                if attempt == attempts:
                    logger.error("Giving up after %d attempts", attempts, exc_info=exc)
                    raise StorageError() from exc
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
        raise StorageError()

    def create_all(self) -> None:
        from . import models  # noqa: F401  # ensure models are imported for metadata

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
