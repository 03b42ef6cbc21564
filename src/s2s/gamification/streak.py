"""Study streaks: consecutive calendar days with at least one session.

Pure functions only; callers persist the resulting state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
    last_study_date: date | None = None


def resolve_timezone(name: str) -> tzinfo:
    return ZoneInfo(name)


def local_date(ts: datetime, default_tz: tzinfo) -> date:
    """Calendar date of ``ts`` in its own offset; naive timestamps use ``default_tz``."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=default_tz)
    return ts.date()


def local_hour(ts: datetime, default_tz: tzinfo) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=default_tz)
    return ts.hour


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def get_week_iso(d: date | datetime) -> str:
    """Get ISO week string e.g. '2026-W09'. Uses %G-W%V (ISO year + ISO week)."""
    return d.strftime("%G-W%V")


def update_streak(state: StreakState, study_date: date) -> StreakState:
    """Apply one study event on ``study_date``.

    - first ever session: 1
    - same day: unchanged
    - next day: +1
    - any other gap, including a date before the last one: reset to 1
    """
    if state.last_study_date is None:
        current = 1
    else:
        gap = (study_date - state.last_study_date).days
        if gap == 0:
            current = state.current
        elif gap == 1:
            current = state.current + 1
        else:
            current = 1
    return StreakState(
        current=current,
        longest=max(state.longest, current),
        last_study_date=study_date,
    )
