"""Test helpers: token signing and catalog builders."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from s2s.catalog.grid import CatalogItem, GridIndex, LevelInfo, SubjectInfo
from s2s.catalog.service import GridCache
from s2s.config import get_settings

_PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
PRIVATE_PEM = _PRIVATE_KEY.private_bytes(
    serialization.Encoding.PEM,
    serialization.PrivateFormat.PKCS8,
    serialization.NoEncryption(),
).decode()
PUBLIC_PEM = _PRIVATE_KEY.public_key().public_bytes(
    serialization.Encoding.PEM,
    serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()


def make_token(sub: str = "user-1", key: str = PRIVATE_PEM, **overrides: Any) -> str:
    """Sign a token the way the identity provider does."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": sub,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(hours=1),
    }
    payload.update(overrides)
    return jwt.encode(payload, key, algorithm="RS256")


def auth_headers(sub: str = "user-1") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub)}"}


def build_grid(cells: dict[str, list[int]], levels: int, duration: float = 600.0) -> GridIndex:
    """Grid with one video ``{subject}-{level}`` per listed cell."""
    subjects = [SubjectInfo(id=s, name=s.title(), order=i) for i, s in enumerate(cells)]
    level_infos = [LevelInfo(id=f"level-{n}", level=n, name=f"Level {n}") for n in range(1, levels + 1)]
    videos = [
        CatalogItem(
            id=f"{subject}-{level}",
            subject=subject,
            complexity_level=level,
            title=f"{subject.title()} {level}",
            duration_seconds=duration,
            thumbnail_url=f"https://cdn.example.com/{subject}-{level}.jpg",
            video_url=f"https://cdn.example.com/{subject}-{level}.mp4",
        )
        for subject, lvls in cells.items()
        for level in lvls
    ]
    return GridIndex.build(subjects, level_infos, videos)


def static_cache(grid: GridIndex) -> GridCache:
    async def _load() -> GridIndex:
        return grid

    return GridCache(_load)
