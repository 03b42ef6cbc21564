"""User profile document schema and API request/response models.

Profile documents are stored in camelCase (``stats.completedVideoCount``)
and decoded through these models. Decoding fails closed: a document that
does not validate raises ``DecodeError`` instead of being patched up with
zero defaults. Achievement counters are the exception; they default to zero
because the sub-records grew over time and an absent counter means "never
incremented".
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from s2s.errors import DecodeError

SortedIntSet = Annotated[set[int], PlainSerializer(lambda v: sorted(v), return_type=list[int])]
SortedStrSet = Annotated[set[str], PlainSerializer(lambda v: sorted(v), return_type=list[str])]


class DocumentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Role(str, Enum):
    CREATOR = "creator"
    CONSUMER = "consumer"


# --- Editable metadata ---


class Preferences(DocumentModel):
    selected_subjects: list[str] = Field(default_factory=list)
    preferred_level: int = Field(default=1, ge=1)
    content_type: list[str] = Field(default_factory=list)


class ProfileInfo(DocumentModel):
    display_name: str = "User"
    bio: str = ""
    avatar_url: str = ""


class UserSettings(DocumentModel):
    notifications: bool = True
    autoplay: bool = True
    preferred_language: str = "en"


# --- Stats ---


class Stats(DocumentModel):
    total_watch_time_seconds: float = Field(ge=0)
    completed_video_count: int = Field(ge=0)
    study_streak: int = Field(ge=0)
    last_study_date: date | None = None
    last_login_at: datetime | None = None


# --- Achievement sub-records ---


class VideoAchievements(DocumentModel):
    completed_videos: int = Field(default=0, ge=0)
    unlocked_milestones: SortedIntSet = Field(default_factory=set)


class SubjectAchievements(DocumentModel):
    completed_subjects: int = Field(default=0, ge=0)
    completed_subject_ids: SortedStrSet = Field(default_factory=set)
    unlocked_milestones: SortedIntSet = Field(default_factory=set)


class StreakAchievements(DocumentModel):
    longest_streak: int = Field(default=0, ge=0)
    unlocked_milestones: SortedIntSet = Field(default_factory=set)


class TimeAchievements(DocumentModel):
    longest_session: int = Field(default=0, ge=0)
    unlocked_milestones: SortedIntSet = Field(default_factory=set)


class SocialAchievements(DocumentModel):
    created_collections: int = Field(default=0, ge=0)
    created_notes: int = Field(default=0, ge=0)
    shared_resources: int = Field(default=0, ge=0)
    joined_groups: int = Field(default=0, ge=0)
    helped_students: int = Field(default=0, ge=0)
    # "<counter>:<threshold>", e.g. "createdNotes:5"
    unlocked_milestones: SortedStrSet = Field(default_factory=set)


class SpecialAchievements(DocumentModel):
    early_bird_sessions: int = Field(default=0, ge=0)
    night_owl_sessions: int = Field(default=0, ge=0)
    weekend_study_sessions: int = Field(default=0, ge=0)
    multi_subject_days: int = Field(default=0, ge=0)
    perfect_weeks: int = Field(default=0, ge=0)
    speed_learning: int = Field(default=0, ge=0)
    diverse_learning: int = Field(default=0, ge=0)
    focus_sessions: int = Field(default=0, ge=0)
    studied_subjects_day: date | None = None
    studied_subjects_today: SortedStrSet = Field(default_factory=set)
    studied_levels: SortedIntSet = Field(default_factory=set)
    last_perfect_week: str | None = None
    unlocked_milestones: SortedStrSet = Field(default_factory=set)


class Achievements(DocumentModel):
    videos: VideoAchievements = Field(default_factory=VideoAchievements)
    subjects: SubjectAchievements = Field(default_factory=SubjectAchievements)
    streaks: StreakAchievements = Field(default_factory=StreakAchievements)
    time: TimeAchievements = Field(default_factory=TimeAchievements)
    social: SocialAchievements = Field(default_factory=SocialAchievements)
    special: SpecialAchievements = Field(default_factory=SpecialAchievements)


# --- Profile document ---


class UserProfile(DocumentModel):
    id: str
    role: Role
    last_active: datetime
    preferences: Preferences
    profile: ProfileInfo
    stats: Stats
    settings: UserSettings
    achievements: Achievements = Field(default_factory=Achievements)
    created_at: datetime
    updated_at: datetime

    def to_document(self) -> dict[str, Any]:
        """Serialise to the stored camelCase form (``id`` is the document key)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


def decode_profile(user_id: str, data: dict[str, Any]) -> UserProfile:
    """Validate a stored profile document. Raises DecodeError."""
    try:
        return UserProfile.model_validate({**data, "id": user_id})
    except PydanticValidationError as e:
        msg = f"Profile document for {user_id} failed validation: {e.error_count()} error(s)"
        raise DecodeError(msg) from e


# --- API models ---


class PreferencesUpdate(BaseModel):
    selected_subjects: list[str] | None = None
    preferred_level: int | None = Field(default=None, ge=1)
    content_type: list[str] | None = None


class ProfileInfoUpdate(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    bio: str | None = Field(default=None, max_length=500)
    avatar_url: str | None = None


class SettingsUpdate(BaseModel):
    notifications: bool | None = None
    autoplay: bool | None = None
    preferred_language: str | None = Field(default=None, min_length=2, max_length=10)


class StatsResponse(BaseModel):
    total_watch_time_seconds: float
    completed_video_count: int
    study_streak: int
    longest_streak: int
    last_study_date: date | None = None


class ProfileResponse(BaseModel):
    id: str
    role: str
    display_name: str
    bio: str
    avatar_url: str
    preferences: Preferences
    settings: UserSettings
    stats: StatsResponse
    created_at: datetime
