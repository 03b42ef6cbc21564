"""
Bearer credential verification.

Tokens are issued by the external identity provider and signed with its
private key; this service only holds the public key and verifies signature,
issuer, audience and expiry. The ``sub`` claim is the user id.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from s2s.config import get_settings
from s2s.errors import NotAuthenticated

_public_key: str | None = None


def _load_public_key() -> str:
    """Load the verification key from disk (cached after first call)."""
    global _public_key  # noqa: PLW0603
    if _public_key is None:
        settings = get_settings()
        _public_key = Path(settings.jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset the cached key (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a bearer token.

    Args:
        token: The encoded JWT string.

    Returns:
        Decoded payload dictionary (always carries a non-empty ``sub``).

    Raises:
        NotAuthenticated: If the token is invalid, expired, or for another audience.
    """
    public_key = _load_public_key()
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            public_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise NotAuthenticated(msg) from None
    except jwt.InvalidTokenError as e:
        raise NotAuthenticated(f"Invalid token: {e}") from e

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise NotAuthenticated(msg)
    return payload
