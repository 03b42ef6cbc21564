"""Pydantic models for progress endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GridProgressResponse(BaseModel):
    # subject -> watched levels, ascending
    progress: dict[str, list[int]]
    completed: int
    completion_rate: float


class SubjectProgressResponse(BaseModel):
    subject: str
    progress: float


class LevelResponse(BaseModel):
    current_level: int


class MarkWatchedRequest(BaseModel):
    video_id: str = Field(min_length=1)


class PlaybackReportRequest(BaseModel):
    video_id: str = Field(min_length=1)
    position_seconds: float = Field(ge=0)
    duration_seconds: float = Field(gt=0)


class WatchResponse(BaseModel):
    video_id: str
    completed: bool
    newly_completed: bool
