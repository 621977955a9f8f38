"""
Configuration helpers for the account lifecycle backend.

Settings are read from environment variables once, at process start, by
``load_settings`` and then handed to every component that needs them
(database, services, mailer). Nothing in the package reads os.environ later.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str = "dev"
    database_url: str = ""
    public_base_url: str = "http://localhost:5173"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    email_from_name: str = "Kitchen Solutions"
    email_verification_ttl_seconds: int = 60 * 60
    max_resend_attempts: int = 3
    resend_cooldown_seconds: int = 2 * 60
    deletion_grace_days: int = 30
    storage_retry_attempts: int = 3
    identity_header: str = "x-authenticated-user-id"
    log_level: str = "INFO"
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.email_verification_ttl_seconds)

    @property
    def resend_cooldown(self) -> timedelta:
        return timedelta(seconds=self.resend_cooldown_seconds)

    @property
    def deletion_grace_period(self) -> timedelta:
        return timedelta(days=self.deletion_grace_days)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read the given environment (defaults to os.environ) and build a Settings instance."""
    env = os.environ if environ is None else environ

    def _int(value: str | None, default: int) -> int:
        try:
            return int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return default

    smtp_user = env.get("SMTP_USER", "")
    return Settings(
        app_env=(env.get("APP_ENV") or "dev").lower(),
        database_url=(env.get("DATABASE_URL") or "").strip(),
        public_base_url=env.get("PUBLIC_BASE_URL", "http://localhost:5173").rstrip("/"),
        smtp_host=env.get("SMTP_HOST", ""),
        smtp_port=_int(env.get("SMTP_PORT"), 587),
        smtp_user=smtp_user,
        smtp_password=env.get("SMTP_PASSWORD", ""),
        smtp_from=env.get("SMTP_FROM", smtp_user),
        email_from_name=env.get("EMAIL_FROM_NAME", "Kitchen Solutions"),
        email_verification_ttl_seconds=max(1, _int(env.get("EMAIL_VERIFICATION_TTL_SECONDS"), 3600)),
        max_resend_attempts=max(0, _int(env.get("MAX_RESEND_ATTEMPTS"), 3)),
        resend_cooldown_seconds=max(0, _int(env.get("RESEND_COOLDOWN_SECONDS"), 120)),
        deletion_grace_days=max(1, _int(env.get("DELETION_GRACE_DAYS"), 30)),
        storage_retry_attempts=max(1, _int(env.get("STORAGE_RETRY_ATTEMPTS"), 3)),
        identity_header=(env.get("IDENTITY_HEADER") or "x-authenticated-user-id").lower(),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        server_host=env.get("SERVER_HOST") or "127.0.0.1",
        server_port=_int(env.get("SERVER_PORT"), 8000),
    )
