"""Verification secret helpers (generation and digests)."""

from __future__ import annotations

import hashlib
import secrets

TOKEN_BYTES = 32


def generate_token() -> str:
    """Create a random secret to be shown to the user exactly once."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """One-way digest stored in place of the plaintext secret."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
