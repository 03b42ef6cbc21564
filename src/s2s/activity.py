"""Study-session completion: streak, then progress, then achievements."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from s2s.errors import NotFound
from s2s.gamification.streak import local_date

if TYPE_CHECKING:
    from collections.abc import Iterable

    from s2s.gamification.engine import AchievementEngine
    from s2s.gamification.schemas import UnlockedMilestone
    from s2s.gamification.session_tracker import SessionTracker
    from s2s.gamification.streak import StreakState
    from s2s.progress.service import ProgressTracker
    from s2s.sessions import UserSession
    from s2s.users.service import ProfileService

logger = structlog.get_logger()


@dataclass
class SessionResult:
    streak: StreakState | None
    newly_completed: bool = False
    unlocked: list[UnlockedMilestone] = field(default_factory=list)


class ActivityService:
    """Runs the whole study-session pipeline with one call."""

    def __init__(
        self,
        profiles: ProfileService,
        progress: ProgressTracker,
        tracker: SessionTracker,
        engine: AchievementEngine,
    ) -> None:
        self.profiles = profiles
        self.progress = progress
        self.tracker = tracker
        self.engine = engine

    async def complete_session(
        self,
        user_id: str,
        session_start: datetime,
        duration_seconds: int,
        subjects: Iterable[str] = (),
        video_id: str | None = None,
        session: UserSession | None = None,
    ) -> SessionResult:
        """Apply a finished study session.

        With a ``session`` the work runs as a task owned by it, so a sign-out
        cancels it and no later write is applied. An unknown ``video_id`` raises
        NotFound before anything is written.
        """
        work = self._complete(user_id, session_start, duration_seconds, list(subjects), video_id, session)
        if session is None:
            return await work
        return await session.run(work)

    async def _complete(
        self,
        user_id: str,
        session_start: datetime,
        duration_seconds: int,
        subjects: list[str],
        video_id: str | None,
        session: UserSession | None,
    ) -> SessionResult:
        item = None
        if video_id is not None:
            item = (await self.progress.grid_cache.get()).find(video_id)
            if item is None:
                logger.warning("session_video_not_in_catalog", user_id=user_id, video_id=video_id)
                msg = f"Video not found: {video_id}"
                raise NotFound(msg)
            if item.subject not in subjects:
                subjects.append(item.subject)

        streak = await self.tracker.track_study_session(
            user_id, session_start, duration_seconds, subjects, session
        )
        if streak is None:
            return SessionResult(streak=None)

        newly_completed = False
        if item is not None:
            newly_completed = await self.progress.mark_watched(user_id, item.id, session)
            if newly_completed:
                await self.tracker.track_subject_completion(
                    user_id, item.subject, item.complexity_level, session
                )

        day = local_date(session_start, self.tracker.default_tz)
        await self.tracker.track_daily_goal_completion(user_id, day, session)
        await self.profiles.touch_last_active(user_id, session)

        unlocked = await self.engine.check_and_unlock(user_id, session)
        logger.info(
            "study_session_completed",
            user_id=user_id,
            duration=duration_seconds,
            streak=streak.current,
            newly_completed=newly_completed,
            unlocked=len(unlocked),
        )
        return SessionResult(streak=streak, newly_completed=newly_completed, unlocked=unlocked)
