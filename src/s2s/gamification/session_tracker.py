"""Study-session side effects on the special/time/streak achievement counters.

Each call is a read-modify-write of the profile document: read, compute,
then one merge-write. A missing profile is a no-op.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING, Any

from s2s.gamification.milestones import (
    EARLY_BIRD_HOUR,
    FOCUS_SESSION_SECONDS,
    MULTI_SUBJECT_DAY_SUBJECTS,
    NIGHT_OWL_HOUR,
    PERFECT_WEEK_STREAK,
    SPEED_LEARNING_MAX_SECONDS,
    SPEED_LEARNING_MIN_VIDEOS,
)
from s2s.gamification.streak import (
    StreakState,
    get_week_iso,
    is_weekend,
    local_date,
    local_hour,
    update_streak,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from s2s.sessions import UserSession
    from s2s.users.service import ProfileService

logger = logging.getLogger(__name__)


class SessionTracker:
    """Applies study events to a user's achievement counters."""

    def __init__(self, profiles: ProfileService, default_tz: tzinfo) -> None:
        self.profiles = profiles
        self.default_tz = default_tz

    async def track_study_session(
        self,
        user_id: str,
        session_start: datetime,
        duration_seconds: int,
        subjects: Iterable[str] = (),
        session: UserSession | None = None,
    ) -> StreakState | None:
        """Record one finished study session. Returns the new streak state."""
        profile = await self.profiles.get(user_id)
        if profile is None:
            logger.info("Study session for missing profile %s ignored", user_id)
            return None

        stats = profile.stats
        a = profile.achievements
        special = a.special
        day = local_date(session_start, self.default_tz)
        hour = local_hour(session_start, self.default_tz)

        special_patch: dict[str, Any] = {}
        if hour < EARLY_BIRD_HOUR:
            special_patch["earlyBirdSessions"] = special.early_bird_sessions + 1
        if hour >= NIGHT_OWL_HOUR:
            special_patch["nightOwlSessions"] = special.night_owl_sessions + 1
        if is_weekend(day):
            special_patch["weekendStudySessions"] = special.weekend_study_sessions + 1

        # Distinct subjects studied on this calendar day
        studied = set(special.studied_subjects_today) if special.studied_subjects_day == day else set()
        before = len(studied)
        studied.update(subjects)
        if before < MULTI_SUBJECT_DAY_SUBJECTS <= len(studied):
            special_patch["multiSubjectDays"] = special.multi_subject_days + 1
        special_patch["studiedSubjectsDay"] = day.isoformat()
        special_patch["studiedSubjectsToday"] = sorted(studied)

        if duration_seconds >= FOCUS_SESSION_SECONDS:
            special_patch["focusSessions"] = special.focus_sessions + 1

        completed_since_last = stats.completed_video_count - a.videos.completed_videos
        if duration_seconds <= SPEED_LEARNING_MAX_SECONDS and completed_since_last >= SPEED_LEARNING_MIN_VIDEOS:
            special_patch["speedLearning"] = special.speed_learning + 1

        achievements_patch: dict[str, Any] = {
            "special": special_patch,
            "videos": {"completedVideos": stats.completed_video_count},
        }

        minutes = duration_seconds // 60
        if minutes > a.time.longest_session:
            achievements_patch["time"] = {"longestSession": minutes}

        streak = update_streak(
            StreakState(stats.study_streak, a.streaks.longest_streak, stats.last_study_date),
            day,
        )
        if streak.longest != a.streaks.longest_streak:
            achievements_patch["streaks"] = {"longestStreak": streak.longest}

        await self.profiles.merge(
            user_id,
            {
                "stats": {
                    "studyStreak": streak.current,
                    "lastStudyDate": day.isoformat(),
                },
                "achievements": achievements_patch,
            },
            session,
        )
        logger.debug(
            "Tracked session for %s on %s: streak=%d special=%s",
            user_id, day, streak.current, sorted(special_patch),
        )
        return streak

    async def track_subject_completion(
        self,
        user_id: str,
        subject: str,
        level: int,
        session: UserSession | None = None,
    ) -> int | None:
        """Note that ``level`` was studied. Returns the distinct-level count."""
        profile = await self.profiles.get(user_id)
        if profile is None:
            return None

        levels = set(profile.achievements.special.studied_levels)
        levels.add(level)
        await self.profiles.merge(
            user_id,
            {
                "achievements": {
                    "special": {
                        "studiedLevels": sorted(levels),
                        "diverseLearning": len(levels),
                    }
                }
            },
            session,
        )
        logger.debug("User %s studied %s level %d (%d distinct)", user_id, subject, level, len(levels))
        return len(levels)

    async def track_daily_goal_completion(
        self,
        user_id: str,
        day: date,
        session: UserSession | None = None,
    ) -> bool:
        """Count a perfect week, at most once per ISO week, once the streak reaches 7."""
        profile = await self.profiles.get(user_id)
        if profile is None:
            return False
        if profile.stats.study_streak < PERFECT_WEEK_STREAK:
            return False

        special = profile.achievements.special
        week = get_week_iso(day)
        if special.last_perfect_week == week:
            return False

        await self.profiles.merge(
            user_id,
            {
                "achievements": {
                    "special": {
                        "perfectWeeks": special.perfect_weeks + 1,
                        "lastPerfectWeek": week,
                    }
                }
            },
            session,
        )
        logger.info("Perfect week %s recorded for %s", week, user_id)
        return True
