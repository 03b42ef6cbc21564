"""Pydantic models for achievement and study-session endpoints."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Category(str, Enum):
    VIDEOS = "videos"
    SUBJECTS = "subjects"
    STREAKS = "streaks"
    TIME = "time"
    SOCIAL = "social"
    SPECIAL = "special"


# --- Achievements ---


class Achievement(BaseModel):
    id: str
    category: Category
    title: str
    description: str
    icon: str
    goal: int
    current: int
    progress: float
    is_unlocked: bool
    is_recorded: bool = False


class AchievementSummary(BaseModel):
    total: int
    completed: int
    by_category: dict[Category, list[Achievement]]


class AchievementsResponse(BaseModel):
    achievements: list[Achievement]


class UnlockedMilestone(BaseModel):
    category: Category
    milestone: int | str


class UnlockResponse(BaseModel):
    unlocked: list[UnlockedMilestone]


# --- Study sessions ---


class StudySessionRequest(BaseModel):
    session_start: datetime
    duration_seconds: int = Field(ge=0)
    subjects: list[str] = Field(default_factory=list)
    video_id: str | None = None


class StudySessionResponse(BaseModel):
    study_streak: int
    longest_streak: int
    completed_video_count: int
    newly_completed: bool = False
    unlocked: list[UnlockedMilestone] = []


class SocialActivityRequest(BaseModel):
    kind: str
