"""Authenticated caller identity, as handed over by the upstream auth layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Optional


@dataclass(frozen=True)
class AuthenticatedUser:
    """A user id that the upstream JWT layer has already validated."""

    user_id: int


IdentityResolver = Callable[[Mapping[str, str]], Optional[AuthenticatedUser]]


def header_identity_resolver(header_name: str) -> IdentityResolver:
    """
    Build a resolver that trusts a user id header injected by the gateway
    after JWT verification. Missing or malformed values resolve to None.
    """
    header = header_name.lower()

    def resolve(headers: Mapping[str, str]) -> Optional[AuthenticatedUser]:
        raw = (headers.get(header) or "").strip()
        if not raw:
            return None
        try:
            user_id = int(raw)
        except ValueError:
            return None
        if user_id <= 0:
            return None
        return AuthenticatedUser(user_id=user_id)

    return resolve
