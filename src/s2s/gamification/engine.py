"""Achievement engine: read-side projection and the unlock write path."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic.alias_generators import to_snake

from s2s.errors import RemoteError, ValidationError
from s2s.gamification.milestones import (
    SOCIAL_COUNTERS,
    SOCIAL_KINDS,
    SOCIAL_THRESHOLDS,
    SPECIAL_GOALS,
    STREAK_MILESTONES,
    SUBJECT_MILESTONES,
    TIME_MILESTONES,
    VIDEO_MILESTONES,
)
from s2s.gamification.schemas import Achievement, AchievementSummary, Category, UnlockedMilestone

if TYPE_CHECKING:
    from s2s.sessions import UserSession
    from s2s.users.schemas import UserProfile
    from s2s.users.service import ProfileService

logger = logging.getLogger(__name__)

ACHIEVEMENTS_CHANNEL = "achievements"

# Categories whose unlock sets hold integer thresholds.
_NUMERIC = {Category.VIDEOS, Category.SUBJECTS, Category.STREAKS, Category.TIME}


def _view(
    category: Category,
    key: int | str,
    title: str,
    description: str,
    icon: str,
    goal: int,
    raw: int,
    recorded: set,
) -> Achievement:
    progress = min(raw / goal, 1.0)
    return Achievement(
        id=f"{category.value}:{key}",
        category=category,
        title=title,
        description=description,
        icon=icon,
        goal=goal,
        current=min(raw, goal),
        progress=progress,
        is_unlocked=progress >= 1.0,
        is_recorded=key in recorded,
    )


def unlock_key(achievement: Achievement) -> int | str:
    """The value stored in the category's ``unlockedMilestones`` set."""
    key = achievement.id.split(":", 1)[1]
    return int(key) if achievement.category in _NUMERIC else key


def study_minutes(profile: UserProfile) -> int:
    return int(profile.stats.total_watch_time_seconds // 60)


def project_achievements(profile: UserProfile) -> list[Achievement]:
    """One view per (category, milestone). Never mutates the profile."""
    stats = profile.stats
    a = profile.achievements
    views: list[Achievement] = []

    for m in VIDEO_MILESTONES:
        views.append(_view(
            Category.VIDEOS, m, f"{m} Videos", f"Complete {m} videos", "play.circle.fill",
            m, stats.completed_video_count, a.videos.unlocked_milestones,
        ))

    for m in SUBJECT_MILESTONES:
        views.append(_view(
            Category.SUBJECTS, m, f"{m} Subjects", f"Complete {m} subjects", "folder.fill",
            m, a.subjects.completed_subjects, a.subjects.unlocked_milestones,
        ))

    for entry in STREAK_MILESTONES:
        days = entry["days"]
        views.append(_view(
            Category.STREAKS, days, entry["title"], f"Maintain a {days}-day study streak", "flame.fill",
            days, stats.study_streak, a.streaks.unlocked_milestones,
        ))

    minutes = study_minutes(profile)
    for entry in TIME_MILESTONES:
        views.append(_view(
            Category.TIME, entry["minutes"], entry["title"], entry["description"], "clock.fill",
            entry["minutes"], minutes, a.time.unlocked_milestones,
        ))

    for counter in SOCIAL_COUNTERS:
        raw = getattr(a.social, to_snake(counter["key"]))
        for t in SOCIAL_THRESHOLDS:
            views.append(_view(
                Category.SOCIAL, f"{counter['key']}:{t}", counter["title"],
                counter["description"].format(n=t), counter["icon"],
                t, raw, a.social.unlocked_milestones,
            ))

    for goal in SPECIAL_GOALS:
        raw = getattr(a.special, to_snake(goal["key"]))
        views.append(_view(
            Category.SPECIAL, goal["key"], goal["title"], goal["description"], goal["icon"],
            goal["goal"], raw, a.special.unlocked_milestones,
        ))

    return views


def summarize(achievements: list[Achievement]) -> AchievementSummary:
    by_category: dict[Category, list[Achievement]] = {c: [] for c in Category}
    for achievement in achievements:
        by_category[achievement.category].append(achievement)
    return AchievementSummary(
        total=len(achievements),
        completed=sum(1 for x in achievements if x.is_unlocked),
        by_category=by_category,
    )


def _recorded(profile: UserProfile) -> dict[Category, set]:
    a = profile.achievements
    return {
        Category.VIDEOS: set(a.videos.unlocked_milestones),
        Category.SUBJECTS: set(a.subjects.unlocked_milestones),
        Category.STREAKS: set(a.streaks.unlocked_milestones),
        Category.TIME: set(a.time.unlocked_milestones),
        Category.SOCIAL: set(a.social.unlocked_milestones),
        Category.SPECIAL: set(a.special.unlocked_milestones),
    }


def pending_unlocks(profile: UserProfile) -> dict[Category, set]:
    """Milestones the counters qualify for that are not yet recorded."""
    pending: dict[Category, set] = {}
    for view in project_achievements(profile):
        if view.is_unlocked and not view.is_recorded:
            pending.setdefault(view.category, set()).add(unlock_key(view))
    return pending


class AchievementEngine:
    """Persists newly qualifying milestones into the profile's unlock sets."""

    def __init__(self, profiles: ProfileService) -> None:
        self.profiles = profiles

    async def check_and_unlock(
        self, user_id: str, session: UserSession | None = None
    ) -> list[UnlockedMilestone]:
        """Record every milestone the current counters qualify for.

        Unlock sets only grow: the new set is the union of what is stored and
        what qualifies now. Returns the newly recorded milestones.
        """
        profile = await self.profiles.get(user_id)
        if profile is None:
            return []

        pending = pending_unlocks(profile)
        if not pending:
            return []

        recorded = _recorded(profile)
        patch = {
            category.value: {"unlockedMilestones": sorted(recorded[category] | keys)}
            for category, keys in pending.items()
        }
        await self.profiles.merge(user_id, {"achievements": patch}, session)

        unlocked = [
            UnlockedMilestone(category=category, milestone=key)
            for category in Category
            for key in sorted(pending.get(category, ()))
        ]
        logger.info("Unlocked %d milestone(s) for user %s", len(unlocked), user_id)
        await self._notify(user_id, unlocked)
        return unlocked

    async def record_social_activity(
        self, user_id: str, kind: str, session: UserSession | None = None
    ) -> list[UnlockedMilestone]:
        """Atomically bump one social counter, then check for unlocks."""
        counter = SOCIAL_KINDS.get(kind)
        if counter is None:
            msg = f"Unknown social activity: {kind}"
            raise ValidationError(msg)

        if await self.profiles.get(user_id) is None:
            logger.warning("Social activity %s for missing profile %s ignored", kind, user_id)
            return []

        await self.profiles.increment(user_id, f"achievements.social.{counter}", 1, session)
        return await self.check_and_unlock(user_id, session)

    async def _notify(self, user_id: str, unlocked: list[UnlockedMilestone]) -> None:
        try:
            await self.profiles.store.publish(
                ACHIEVEMENTS_CHANNEL,
                {
                    "user_id": user_id,
                    "event": "milestones_unlocked",
                    "unlocked": [u.model_dump(mode="json") for u in unlocked],
                },
            )
        except RemoteError:
            logger.warning("Failed to publish achievements notification", exc_info=True)
