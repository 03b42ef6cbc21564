"""User profile router: all /api/v1/users/* endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from s2s.dependencies import (
    get_current_profile,
    get_current_user_id,
    get_profile_service,
    get_user_session,
)
from s2s.sessions import SessionRegistry, UserSession, get_session_registry
from s2s.users.schemas import (
    PreferencesUpdate,
    ProfileInfoUpdate,
    ProfileResponse,
    SettingsUpdate,
    StatsResponse,
    UserProfile,
)
from s2s.users.service import ProfileService

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def profile_response(profile: UserProfile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        role=profile.role.value,
        display_name=profile.profile.display_name,
        bio=profile.profile.bio,
        avatar_url=profile.profile.avatar_url,
        preferences=profile.preferences,
        settings=profile.settings,
        stats=StatsResponse(
            total_watch_time_seconds=profile.stats.total_watch_time_seconds,
            completed_video_count=profile.stats.completed_video_count,
            study_streak=profile.stats.study_streak,
            longest_streak=profile.achievements.streaks.longest_streak,
            last_study_date=profile.stats.last_study_date,
        ),
        created_at=profile.created_at,
    )


@router.get("/me", response_model=ProfileResponse)
async def get_profile(profile: UserProfile = Depends(get_current_profile)) -> ProfileResponse:
    """Own profile (created on first call)."""
    return profile_response(profile)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    body: ProfileInfoUpdate,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    updated = await profiles.update_profile_info(profile.id, body, session)
    return profile_response(updated)


@router.patch("/me/preferences", response_model=ProfileResponse)
async def update_my_preferences(
    body: PreferencesUpdate,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    updated = await profiles.update_preferences(profile.id, body, session)
    return profile_response(updated)


@router.patch("/me/settings", response_model=ProfileResponse)
async def update_my_settings(
    body: SettingsUpdate,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    updated = await profiles.update_settings(profile.id, body, session)
    return profile_response(updated)


@router.post("/me/login")
async def record_login(
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    profiles: ProfileService = Depends(get_profile_service),
) -> dict[str, Any]:
    """Stamp ``lastLoginAt`` after the client signs in."""
    await profiles.record_login(profile.id, session)
    return {"status": "ok"}


@router.post("/me/sign-out")
async def sign_out(
    user_id: str = Depends(get_current_user_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict[str, Any]:
    """Cancel every in-flight tracking operation of the caller."""
    closed = await registry.sign_out(user_id)
    logger.info("user_signed_out", user_id=user_id, sessions=closed)
    return {"status": "signed_out", "sessions": closed}
