"""Session tracker tests: special counters, longest session and streaks."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio

from s2s.gamification.session_tracker import SessionTracker
from s2s.users.service import ProfileService

WEDNESDAY_7AM = datetime(2026, 10, 14, 7, 0, tzinfo=timezone.utc)
SATURDAY_NOON = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def user(profiles: ProfileService) -> str:
    await profiles.create("u1")
    return "u1"


class TestNewUserSession:
    """A new user's first session on a weekday morning."""

    @pytest.mark.asyncio
    async def test_early_focus_session(self, user, profiles: ProfileService, tracker: SessionTracker):
        streak = await tracker.track_study_session(user, WEDNESDAY_7AM, 8000)

        profile = await profiles.require(user)
        special = profile.achievements.special
        assert special.early_bird_sessions == 1
        assert special.focus_sessions == 1
        assert special.night_owl_sessions == 0
        assert special.weekend_study_sessions == 0
        assert profile.stats.study_streak == 1
        assert profile.achievements.time.longest_session == 133
        assert profile.achievements.streaks.longest_streak == 1
        assert profile.stats.last_study_date == date(2026, 10, 14)
        assert streak.current == 1

    @pytest.mark.asyncio
    async def test_missing_profile_is_noop(self, store, tracker: SessionTracker):
        assert await tracker.track_study_session("ghost", WEDNESDAY_7AM, 60) is None
        assert await store.get("users/ghost") is None


class TestStreakUpdates:
    """Streaks continue on the next day and reset after a gap."""

    @pytest.mark.asyncio
    async def test_continue_then_reset(self, user, profiles: ProfileService, tracker: SessionTracker):
        today = WEDNESDAY_7AM.replace(hour=12)
        yesterday = (today - timedelta(days=1)).date()
        await profiles.merge(
            user,
            {
                "stats": {"studyStreak": 5, "lastStudyDate": yesterday.isoformat()},
                "achievements": {"streaks": {"longestStreak": 5}},
            },
        )

        await tracker.track_study_session(user, today, 600)
        profile = await profiles.require(user)
        assert profile.stats.study_streak == 6
        assert profile.achievements.streaks.longest_streak == 6

        await tracker.track_study_session(user, today + timedelta(days=2), 600)
        profile = await profiles.require(user)
        assert profile.stats.study_streak == 1
        assert profile.achievements.streaks.longest_streak == 6

    @pytest.mark.asyncio
    async def test_same_day_sessions_keep_streak(self, user, profiles: ProfileService, tracker: SessionTracker):
        await tracker.track_study_session(user, WEDNESDAY_7AM, 600)
        await tracker.track_study_session(user, WEDNESDAY_7AM.replace(hour=18), 600)
        assert (await profiles.require(user)).stats.study_streak == 1

    @pytest.mark.asyncio
    async def test_naive_timestamp_uses_default_zone(self, user, profiles: ProfileService):
        tracker = SessionTracker(profiles, timezone(timedelta(hours=9)))
        await tracker.track_study_session(user, datetime(2026, 10, 14, 23, 30), 600)
        profile = await profiles.require(user)
        assert profile.achievements.special.night_owl_sessions == 1
        assert profile.stats.last_study_date == date(2026, 10, 14)


class TestSpecialCounters:
    """Time-of-day, weekend, focus and speed counters."""

    @pytest.mark.asyncio
    async def test_night_owl(self, user, profiles: ProfileService, tracker: SessionTracker):
        await tracker.track_study_session(user, WEDNESDAY_7AM.replace(hour=22), 600)
        special = (await profiles.require(user)).achievements.special
        assert special.night_owl_sessions == 1
        assert special.early_bird_sessions == 0

    @pytest.mark.asyncio
    async def test_weekend(self, user, profiles: ProfileService, tracker: SessionTracker):
        await tracker.track_study_session(user, SATURDAY_NOON, 600)
        await tracker.track_study_session(user, SATURDAY_NOON + timedelta(days=1), 600)
        special = (await profiles.require(user)).achievements.special
        assert special.weekend_study_sessions == 2

    @pytest.mark.asyncio
    async def test_focus_threshold_inclusive(self, user, profiles: ProfileService, tracker: SessionTracker):
        await tracker.track_study_session(user, SATURDAY_NOON, 7199)
        await tracker.track_study_session(user, SATURDAY_NOON, 7200)
        assert (await profiles.require(user)).achievements.special.focus_sessions == 1

    @pytest.mark.asyncio
    async def test_longest_session_only_grows(self, user, profiles: ProfileService, tracker: SessionTracker):
        await tracker.track_study_session(user, SATURDAY_NOON, 3000)
        await tracker.track_study_session(user, SATURDAY_NOON, 600)
        assert (await profiles.require(user)).achievements.time.longest_session == 50

    @pytest.mark.asyncio
    async def test_speed_learning(self, user, profiles: ProfileService, tracker: SessionTracker):
        await profiles.merge(user, {"stats": {"completedVideoCount": 3}})
        await tracker.track_study_session(user, SATURDAY_NOON, 1800)

        profile = await profiles.require(user)
        assert profile.achievements.special.speed_learning == 1
        assert profile.achievements.videos.completed_videos == 3

        await tracker.track_study_session(user, SATURDAY_NOON, 1800)
        assert (await profiles.require(user)).achievements.special.speed_learning == 1

    @pytest.mark.asyncio
    async def test_slow_session_is_not_speed_learning(self, user, profiles: ProfileService, tracker: SessionTracker):
        await profiles.merge(user, {"stats": {"completedVideoCount": 5}})
        await tracker.track_study_session(user, SATURDAY_NOON, 3601)
        assert (await profiles.require(user)).achievements.special.speed_learning == 0


class TestMultiSubjectDays:
    """Five distinct subjects in one calendar day counts once."""

    @pytest.mark.asyncio
    async def test_counts_once_per_day(self, user, profiles: ProfileService, tracker: SessionTracker):
        await tracker.track_study_session(user, WEDNESDAY_7AM, 600, ["math", "art", "physics"])
        await tracker.track_study_session(user, WEDNESDAY_7AM.replace(hour=9), 600, ["math", "history", "biology"])
        await tracker.track_study_session(user, WEDNESDAY_7AM.replace(hour=10), 600, ["chemistry"])

        special = (await profiles.require(user)).achievements.special
        assert special.multi_subject_days == 1
        assert len(special.studied_subjects_today) == 6

    @pytest.mark.asyncio
    async def test_new_day_starts_empty(self, user, profiles: ProfileService, tracker: SessionTracker):
        await tracker.track_study_session(user, WEDNESDAY_7AM, 600, ["math", "art", "physics", "history"])
        await tracker.track_study_session(user, WEDNESDAY_7AM + timedelta(days=1), 600, ["biology"])

        special = (await profiles.require(user)).achievements.special
        assert special.multi_subject_days == 0
        assert special.studied_subjects_today == {"biology"}
        assert special.studied_subjects_day == date(2026, 10, 15)


class TestSubjectCompletion:
    """Distinct studied levels feed the diverse-learning counter."""

    @pytest.mark.asyncio
    async def test_distinct_levels(self, user, profiles: ProfileService, tracker: SessionTracker):
        assert await tracker.track_subject_completion(user, "math", 1) == 1
        assert await tracker.track_subject_completion(user, "art", 2) == 2
        assert await tracker.track_subject_completion(user, "math", 2) == 2

        special = (await profiles.require(user)).achievements.special
        assert special.diverse_learning == 2
        assert special.studied_levels == {1, 2}

    @pytest.mark.asyncio
    async def test_missing_profile(self, tracker: SessionTracker):
        assert await tracker.track_subject_completion("ghost", "math", 1) is None


class TestPerfectWeek:
    """A 7-day streak counts one perfect week per ISO week."""

    @pytest.mark.asyncio
    async def test_requires_seven_day_streak(self, user, profiles: ProfileService, tracker: SessionTracker):
        await profiles.merge(user, {"stats": {"studyStreak": 6}})
        assert not await tracker.track_daily_goal_completion(user, date(2026, 10, 14))

    @pytest.mark.asyncio
    async def test_once_per_iso_week(self, user, profiles: ProfileService, tracker: SessionTracker):
        await profiles.merge(user, {"stats": {"studyStreak": 7}})
        assert await tracker.track_daily_goal_completion(user, date(2026, 10, 14))
        assert not await tracker.track_daily_goal_completion(user, date(2026, 10, 18))
        assert await tracker.track_daily_goal_completion(user, date(2026, 10, 19))

        special = (await profiles.require(user)).achievements.special
        assert special.perfect_weeks == 2
        assert special.last_perfect_week == "2026-W43"
