"""Pydantic schemas for the credential pre-check."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class CredentialCheckRequest(BaseModel):
    """Sign-up form values, checked before they are sent to the identity provider."""

    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=1024)
    confirm_password: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class CredentialCheckResponse(BaseModel):
    valid: bool
    email: str
