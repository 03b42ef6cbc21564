"""Library documents (notes, saved videos, collections) and request models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from s2s.errors import DecodeError
from s2s.users.schemas import DocumentModel

M = TypeVar("M", bound=DocumentModel)


# --- Documents ---


class StudyNote(DocumentModel):
    id: str
    user_id: str
    video_id: str = ""
    original_text: str
    summary: str | None = None
    created_at: datetime
    updated_at: datetime


class SavedVideo(DocumentModel):
    id: str
    title: str
    thumbnail_url: str = Field(default="", alias="thumbnailURL")
    video_url: str = Field(default="", alias="videoURL")
    saved_at: datetime
    duration: float = 0.0
    subject: str = ""


class Collection(DocumentModel):
    id: str
    name: str
    description: str = ""
    thumbnail_url: str = ""
    video_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


def to_document(model: DocumentModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude={"id"})


def decode(model: type[M], doc_id: str, data: dict[str, Any]) -> M:
    """Validate a stored library document. Raises DecodeError."""
    try:
        return model.model_validate({**data, "id": doc_id})
    except PydanticValidationError as e:
        msg = f"{model.__name__} document {doc_id} failed validation: {e.error_count()} error(s)"
        raise DecodeError(msg) from e


# --- Requests ---


class NoteCreateRequest(BaseModel):
    original_text: str = Field(min_length=1)
    video_id: str = ""
    summary: str | None = None


class NoteUpdateRequest(BaseModel):
    original_text: str = Field(min_length=1)


class SummaryUpdateRequest(BaseModel):
    summary: str = Field(min_length=1)


class SaveVideoRequest(BaseModel):
    video_id: str = Field(min_length=1)


class CollectionCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)


class CollectionVideoRequest(BaseModel):
    video_id: str = Field(min_length=1)


class SummarizeRequest(BaseModel):
    text: str = Field(min_length=1)
    video_id: str = ""


class GenerateCollectionRequest(BaseModel):
    goal: str = Field(min_length=1, max_length=500)


class SavedStatusResponse(BaseModel):
    video_id: str
    saved: bool
