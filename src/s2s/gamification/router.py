"""Achievement and study-session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from s2s.activity import ActivityService
from s2s.dependencies import (
    get_achievement_engine,
    get_activity_service,
    get_current_profile,
    get_user_session,
)
from s2s.gamification.engine import AchievementEngine, project_achievements, summarize
from s2s.gamification.schemas import (
    AchievementsResponse,
    AchievementSummary,
    SocialActivityRequest,
    StudySessionRequest,
    StudySessionResponse,
    UnlockResponse,
)
from s2s.sessions import UserSession
from s2s.users.schemas import UserProfile

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


# ── Achievements ──


@router.get("/achievements", response_model=AchievementsResponse)
async def list_achievements(profile: UserProfile = Depends(get_current_profile)) -> AchievementsResponse:
    """Every milestone with its progress fraction."""
    return AchievementsResponse(achievements=project_achievements(profile))


@router.get("/achievements/summary", response_model=AchievementSummary)
async def achievements_summary(profile: UserProfile = Depends(get_current_profile)) -> AchievementSummary:
    return summarize(project_achievements(profile))


@router.post("/achievements/check", response_model=UnlockResponse)
async def check_achievements(
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    engine: AchievementEngine = Depends(get_achievement_engine),
) -> UnlockResponse:
    """Record milestones the current counters qualify for."""
    unlocked = await session.run(engine.check_and_unlock(profile.id, session))
    return UnlockResponse(unlocked=unlocked)


@router.post("/achievements/social", response_model=UnlockResponse)
async def record_social_activity(
    body: SocialActivityRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    engine: AchievementEngine = Depends(get_achievement_engine),
) -> UnlockResponse:
    unlocked = await session.run(engine.record_social_activity(profile.id, body.kind, session))
    return UnlockResponse(unlocked=unlocked)


# ── Study sessions ──


@router.post("/sessions", response_model=StudySessionResponse)
async def complete_study_session(
    body: StudySessionRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    activity: ActivityService = Depends(get_activity_service),
) -> StudySessionResponse:
    """Streak, then progress, then achievements, for one finished session."""
    result = await activity.complete_session(
        profile.id,
        body.session_start,
        body.duration_seconds,
        body.subjects,
        body.video_id,
        session,
    )
    updated = await activity.profiles.require(profile.id)
    return StudySessionResponse(
        study_streak=updated.stats.study_streak,
        longest_streak=updated.achievements.streaks.longest_streak,
        completed_video_count=updated.stats.completed_video_count,
        newly_completed=result.newly_completed,
        unlocked=result.unlocked,
    )
