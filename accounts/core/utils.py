"""
Utility helpers shared across routers/services.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC value.

    SQLite hands back naive datetimes even for timezone=True columns; those are
    stored as UTC, so they are tagged rather than converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL on the public base.
    """
    base_url = (base or "").rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path
