"""Request bodies for the lifecycle endpoints."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    email: EmailStr
    first_name: str = Field("", alias="firstName", max_length=255)
    last_name: str = Field("", alias="lastName", max_length=255)

    model_config = ConfigDict(populate_by_name=True)


class VerifyEmailRequest(BaseModel):
    token: str | None = None

    @field_validator("token", mode="before")
    @classmethod
    def token_as_text(cls, v: Any) -> str | None:
        # Anything but a string counts as no token; the service reports it as missing.
        return v if isinstance(v, str) else None
