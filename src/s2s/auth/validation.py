"""Local credential validation rules applied before calling the identity provider."""

from __future__ import annotations

import re

from s2s.errors import ValidationError

_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128


def is_valid_email(email: str) -> bool:
    return (
        3 <= len(email) <= 254
        and "." in email
        and _EMAIL_RE.match(email) is not None
    )


def validate_email(email: str) -> None:
    """Raises ValidationError for a malformed address."""
    if not is_valid_email(email):
        msg = "Please enter a valid email address"
        raise ValidationError(msg)


def validate_password(password: str, confirm: str | None = None) -> None:
    """
    Validate a sign-up password.

    Requirements:
    - Not empty or whitespace-only
    - At least 6 characters (the identity provider's minimum)
    - At most 128 characters
    - Matches the confirmation, when one is given
    """
    if not password or not password.strip():
        msg = "Password cannot be empty"
        raise ValidationError(msg)
    if len(password) < MIN_PASSWORD_LENGTH:
        msg = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        raise ValidationError(msg)
    if len(password) > MAX_PASSWORD_LENGTH:
        msg = f"Password must not exceed {MAX_PASSWORD_LENGTH} characters"
        raise ValidationError(msg)
    if confirm is not None and confirm != password:
        msg = "Passwords do not match"
        raise ValidationError(msg)
