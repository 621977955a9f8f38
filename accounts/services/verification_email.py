"""Rendering of the verification email (HTML + plain text)."""
from __future__ import annotations

from datetime import timedelta
from urllib.parse import quote
import html

from accounts.core.config import Settings
from accounts.core.mailer import OutboundMessage
from accounts.core.utils import absolute_url


def verification_url(settings: Settings, token: str) -> str:
    return absolute_url(f"/verify-email?token={quote(token, safe='')}", settings.public_base_url)


def format_expiration(ttl: timedelta) -> str:
    minutes = int(ttl.total_seconds() // 60)
    if minutes >= 60:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours > 1 else ''}"
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


def render_verification_email(settings: Settings, *, to_email: str, first_name: str, last_name: str, token: str) -> OutboundMessage:
    url = verification_url(settings, token)
    full_name = f"{first_name} {last_name}".strip() or to_email
    app_name = settings.email_from_name
    expires_in = format_expiration(settings.token_ttl)
    safe_url = html.escape(url, quote=True)
    html_body = f"""
    <p>Hello, {html.escape(full_name)}!</p>
    <p>Thanks for signing up to <strong>{html.escape(app_name)}</strong>. Please confirm your email address to activate your account.</p>
    <p><a href="{safe_url}" style="background:#2563eb;color:#fff;padding:12px 18px;border-radius:8px;text-decoration:none;">Verify my account</a></p>
    <p>This link expires in {expires_in}.</p>
    <p>If the button does not work, copy and paste this link into your browser:</p>
    <p><a href="{safe_url}">{safe_url}</a></p>
    <p>If you did not create this account, ignore this email.</p>
    """
    text_body = (
        f"Hello, {full_name}!\n\n"
        f"Thanks for signing up to {app_name}. Verify your email address here:\n\n"
        f"{url}\n\n"
        f"This link expires in {expires_in}.\n"
        "If you did not create this account, ignore this email."
    )
    return OutboundMessage(
        to_email=to_email,
        subject=f"Verify your account at {app_name}",
        html_body=html_body,
        text_body=text_body,
    )
