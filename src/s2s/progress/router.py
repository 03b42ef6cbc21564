"""Progress endpoints: grid progress, subject fractions, level, watch reports."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from s2s.dependencies import (
    get_achievement_engine,
    get_current_profile,
    get_progress_tracker,
    get_user_session,
)
from s2s.gamification.engine import AchievementEngine
from s2s.progress.schemas import (
    GridProgressResponse,
    LevelResponse,
    MarkWatchedRequest,
    PlaybackReportRequest,
    SubjectProgressResponse,
    WatchResponse,
)
from s2s.progress.service import ProgressTracker
from s2s.sessions import UserSession
from s2s.users.schemas import UserProfile

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


@router.get("", response_model=GridProgressResponse)
async def get_grid_progress(
    profile: UserProfile = Depends(get_current_profile),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> GridProgressResponse:
    progress = await tracker.progress_map(profile.id)
    return GridProgressResponse(
        progress={subject: sorted(levels) for subject, levels in progress.items()},
        completed=sum(len(levels) for levels in progress.values()),
        completion_rate=await tracker.completion_rate(profile.id),
    )


@router.get("/subjects/{subject}", response_model=SubjectProgressResponse)
async def get_subject_progress(
    subject: str,
    profile: UserProfile = Depends(get_current_profile),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> SubjectProgressResponse:
    return SubjectProgressResponse(
        subject=subject,
        progress=await tracker.get_subject_progress(profile.id, subject),
    )


@router.get("/level", response_model=LevelResponse)
async def get_current_level(
    profile: UserProfile = Depends(get_current_profile),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> LevelResponse:
    return LevelResponse(current_level=await tracker.current_level(profile.id))


@router.post("/watched", response_model=WatchResponse)
async def mark_watched(
    body: MarkWatchedRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    engine: AchievementEngine = Depends(get_achievement_engine),
) -> WatchResponse:
    newly = await session.run(tracker.mark_watched(profile.id, body.video_id, session))
    if newly:
        await session.run(engine.check_and_unlock(profile.id, session))
    return WatchResponse(video_id=body.video_id, completed=True, newly_completed=newly)


@router.post("/playback", response_model=WatchResponse)
async def report_playback(
    body: PlaybackReportRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    engine: AchievementEngine = Depends(get_achievement_engine),
) -> WatchResponse:
    completed = body.position_seconds / body.duration_seconds >= tracker.watch_threshold
    newly = await session.run(
        tracker.report_playback(
            profile.id, body.video_id, body.position_seconds, body.duration_seconds, session
        )
    )
    if newly:
        await session.run(engine.check_and_unlock(profile.id, session))
    return WatchResponse(video_id=body.video_id, completed=completed, newly_completed=newly)
