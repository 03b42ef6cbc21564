"""User profile store: the canonical per-user document at ``users/{id}``."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from pydantic.alias_generators import to_camel

from s2s.documents.base import Subscription
from s2s.errors import NotFound
from s2s.users.schemas import (
    Achievements,
    Preferences,
    PreferencesUpdate,
    ProfileInfo,
    ProfileInfoUpdate,
    Role,
    SettingsUpdate,
    Stats,
    UserProfile,
    UserSettings,
    decode_profile,
)

if TYPE_CHECKING:
    from s2s.documents.base import DocumentStore
    from s2s.sessions import UserSession

logger = structlog.get_logger()


def profile_path(user_id: str) -> str:
    return f"users/{user_id}"


def new_profile(
    user_id: str,
    display_name: str | None = None,
    avatar_url: str | None = None,
    role: Role = Role.CONSUMER,
    now: datetime | None = None,
) -> UserProfile:
    """A fresh profile with every counter zeroed."""
    if now is None:
        now = datetime.now(timezone.utc)
    return UserProfile(
        id=user_id,
        role=role,
        last_active=now,
        preferences=Preferences(),
        profile=ProfileInfo(display_name=display_name or "User", avatar_url=avatar_url or ""),
        stats=Stats(
            total_watch_time_seconds=0,
            completed_video_count=0,
            study_streak=0,
            last_login_at=now,
        ),
        settings=UserSettings(),
        achievements=Achievements(),
        created_at=now,
        updated_at=now,
    )


def _camel_patch(values: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(k): v for k, v in values.items()}


class ProfileWatch:
    """Decoded view over a profile subscription. Yields ``UserProfile | None``."""

    def __init__(self, user_id: str, subscription: Subscription) -> None:
        self.user_id = user_id
        self.subscription = subscription

    def __aiter__(self) -> ProfileWatch:
        return self

    async def __anext__(self) -> UserProfile | None:
        snapshot = await self.subscription.next()
        if snapshot.data is None:
            return None
        return decode_profile(self.user_id, snapshot.data)

    async def close(self) -> None:
        await self.subscription.close()

    async def __aenter__(self) -> ProfileWatch:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class ProfileService:
    """Reads and merge-writes user profile documents."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # --- Reads ---

    async def get(self, user_id: str) -> UserProfile | None:
        """Fetch and decode a profile. Raises DecodeError on a malformed document."""
        data = await self.store.get(profile_path(user_id))
        if data is None:
            return None
        return decode_profile(user_id, data)

    async def require(self, user_id: str) -> UserProfile:
        profile = await self.get(user_id)
        if profile is None:
            msg = f"Profile not found: {user_id}"
            raise NotFound(msg)
        return profile

    # --- Writes ---

    async def create(
        self,
        user_id: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
        role: Role = Role.CONSUMER,
        session: UserSession | None = None,
    ) -> UserProfile:
        profile = new_profile(user_id, display_name, avatar_url, role)
        if session is not None:
            session.ensure_active()
        await self.store.set(profile_path(user_id), profile.to_document())
        logger.info("profile_created", user_id=user_id, role=role.value)
        return profile

    async def get_or_create(
        self,
        user_id: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
        session: UserSession | None = None,
    ) -> tuple[UserProfile, bool]:
        """Return ``(profile, created)``. Creates a zeroed profile on first sign-in."""
        profile = await self.get(user_id)
        if profile is not None:
            return profile, False
        return await self.create(user_id, display_name, avatar_url, session=session), True

    async def merge(
        self,
        user_id: str,
        patch: dict[str, Any],
        session: UserSession | None = None,
        *,
        touch: bool = True,
    ) -> None:
        """Merge ``patch`` (camelCase, nested) into the profile document.

        Nested maps merge key by key; lists and scalars are replaced. Fields
        not named in the patch are left alone.
        """
        if touch:
            patch = {**patch, "updatedAt": datetime.now(timezone.utc).isoformat()}
        if session is not None:
            session.ensure_active()
        await self.store.set(profile_path(user_id), patch, merge=True)

    async def increment(
        self,
        user_id: str,
        field: str,
        amount: int = 1,
        session: UserSession | None = None,
    ) -> int:
        """Atomically add to a dotted integer field (``achievements.social.createdNotes``)."""
        if session is not None:
            session.ensure_active()
        return await self.store.increment(profile_path(user_id), field, amount)

    async def update_preferences(
        self, user_id: str, body: PreferencesUpdate, session: UserSession | None = None
    ) -> UserProfile:
        await self.require(user_id)
        values = _camel_patch(body.model_dump(exclude_none=True))
        if values:
            await self.merge(user_id, {"preferences": values}, session)
        return await self.require(user_id)

    async def update_settings(
        self, user_id: str, body: SettingsUpdate, session: UserSession | None = None
    ) -> UserProfile:
        await self.require(user_id)
        values = _camel_patch(body.model_dump(exclude_none=True))
        if values:
            await self.merge(user_id, {"settings": values}, session)
        return await self.require(user_id)

    async def update_profile_info(
        self, user_id: str, body: ProfileInfoUpdate, session: UserSession | None = None
    ) -> UserProfile:
        await self.require(user_id)
        values = _camel_patch(body.model_dump(exclude_none=True))
        if values:
            await self.merge(user_id, {"profile": values}, session)
            logger.info("profile_updated", user_id=user_id, fields=sorted(values))
        return await self.require(user_id)

    async def touch_last_active(self, user_id: str, session: UserSession | None = None) -> None:
        now = datetime.now(timezone.utc).isoformat()
        await self.merge(user_id, {"lastActive": now}, session, touch=False)

    async def record_login(self, user_id: str, session: UserSession | None = None) -> None:
        now = datetime.now(timezone.utc).isoformat()
        await self.merge(user_id, {"lastActive": now, "stats": {"lastLoginAt": now}}, session, touch=False)

    # --- Subscriptions ---

    async def watch(self, user_id: str) -> ProfileWatch:
        """Subscribe to profile changes; the current state is delivered first."""
        return ProfileWatch(user_id, await self.store.watch(profile_path(user_id)))
