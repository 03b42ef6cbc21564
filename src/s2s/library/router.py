"""Library endpoints: study notes, saved videos, collections and AI helpers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from s2s.dependencies import (
    get_collections_service,
    get_current_profile,
    get_library_ai,
    get_notes_service,
    get_saved_videos_service,
    get_user_session,
)
from s2s.library.schemas import (
    Collection,
    CollectionCreateRequest,
    CollectionVideoRequest,
    GenerateCollectionRequest,
    NoteCreateRequest,
    NoteUpdateRequest,
    SavedStatusResponse,
    SavedVideo,
    SaveVideoRequest,
    StudyNote,
    SummarizeRequest,
    SummaryUpdateRequest,
)
from s2s.library.service import CollectionsService, LibraryAI, NotesService, SavedVideosService
from s2s.sessions import UserSession
from s2s.users.schemas import UserProfile

router = APIRouter(prefix="/api/v1/library", tags=["Library"])


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@router.get("/notes", response_model=list[StudyNote])
async def list_notes(
    video_id: str | None = Query(default=None),
    profile: UserProfile = Depends(get_current_profile),
    notes: NotesService = Depends(get_notes_service),
) -> list[StudyNote]:
    if video_id is not None:
        return await notes.list_for_video(profile.id, video_id)
    return await notes.list(profile.id)


@router.post("/notes", response_model=StudyNote, status_code=201)
async def create_note(
    body: NoteCreateRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    notes: NotesService = Depends(get_notes_service),
) -> StudyNote:
    return await session.run(
        notes.create(profile.id, body.original_text, body.video_id, body.summary, session)
    )


@router.get("/notes/{note_id}", response_model=StudyNote)
async def get_note(
    note_id: str,
    profile: UserProfile = Depends(get_current_profile),
    notes: NotesService = Depends(get_notes_service),
) -> StudyNote:
    return await notes.get(profile.id, note_id)


@router.patch("/notes/{note_id}", response_model=StudyNote)
async def update_note(
    note_id: str,
    body: NoteUpdateRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    notes: NotesService = Depends(get_notes_service),
) -> StudyNote:
    return await notes.update_text(profile.id, note_id, body.original_text, session)


@router.put("/notes/{note_id}/summary", response_model=StudyNote)
async def update_note_summary(
    note_id: str,
    body: SummaryUpdateRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    notes: NotesService = Depends(get_notes_service),
) -> StudyNote:
    return await notes.update_summary(profile.id, note_id, body.summary, session)


@router.delete("/notes/{note_id}", status_code=204)
async def delete_note(
    note_id: str,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    notes: NotesService = Depends(get_notes_service),
) -> Response:
    await notes.delete(profile.id, note_id, session)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Saved videos
# ---------------------------------------------------------------------------


@router.get("/saved", response_model=list[SavedVideo])
async def list_saved(
    profile: UserProfile = Depends(get_current_profile),
    saved: SavedVideosService = Depends(get_saved_videos_service),
) -> list[SavedVideo]:
    return await saved.list(profile.id)


@router.post("/saved", response_model=SavedVideo, status_code=201)
async def save_video(
    body: SaveVideoRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    saved: SavedVideosService = Depends(get_saved_videos_service),
) -> SavedVideo:
    return await saved.save(profile.id, body.video_id, session)


@router.get("/saved/{video_id}", response_model=SavedStatusResponse)
async def is_saved(
    video_id: str,
    profile: UserProfile = Depends(get_current_profile),
    saved: SavedVideosService = Depends(get_saved_videos_service),
) -> SavedStatusResponse:
    return SavedStatusResponse(video_id=video_id, saved=await saved.is_saved(profile.id, video_id))


@router.delete("/saved/{video_id}", status_code=204)
async def remove_saved(
    video_id: str,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    saved: SavedVideosService = Depends(get_saved_videos_service),
) -> Response:
    await saved.remove(profile.id, video_id, session)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


@router.get("/collections", response_model=list[Collection])
async def list_collections(
    profile: UserProfile = Depends(get_current_profile),
    collections: CollectionsService = Depends(get_collections_service),
) -> list[Collection]:
    return await collections.list(profile.id)


@router.post("/collections", response_model=Collection, status_code=201)
async def create_collection(
    body: CollectionCreateRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    collections: CollectionsService = Depends(get_collections_service),
) -> Collection:
    return await session.run(collections.create(profile.id, body.name, body.description, session))


@router.get("/collections/{collection_id}", response_model=Collection)
async def get_collection(
    collection_id: str,
    profile: UserProfile = Depends(get_current_profile),
    collections: CollectionsService = Depends(get_collections_service),
) -> Collection:
    return await collections.get(profile.id, collection_id)


@router.post("/collections/{collection_id}/videos", response_model=Collection)
async def add_collection_video(
    collection_id: str,
    body: CollectionVideoRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    collections: CollectionsService = Depends(get_collections_service),
) -> Collection:
    return await collections.add_video(profile.id, collection_id, body.video_id, session)


@router.delete("/collections/{collection_id}/videos/{video_id}", response_model=Collection)
async def remove_collection_video(
    collection_id: str,
    video_id: str,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    collections: CollectionsService = Depends(get_collections_service),
) -> Collection:
    return await collections.remove_video(profile.id, collection_id, video_id, session)


@router.delete("/collections/{collection_id}", status_code=204)
async def delete_collection(
    collection_id: str,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    collections: CollectionsService = Depends(get_collections_service),
) -> Response:
    await collections.delete(profile.id, collection_id, session)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# AI
# ---------------------------------------------------------------------------


@router.post("/ai/summaries", response_model=StudyNote, status_code=201)
async def summarize_note(
    body: SummarizeRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    ai: LibraryAI = Depends(get_library_ai),
) -> StudyNote:
    """Summarise text with the chat model and save it as a note."""
    return await session.run(ai.summarize_note(profile.id, body.text, body.video_id, session))


@router.post("/ai/collections", response_model=Collection, status_code=201)
async def generate_collection(
    body: GenerateCollectionRequest,
    profile: UserProfile = Depends(get_current_profile),
    session: UserSession = Depends(get_user_session),
    ai: LibraryAI = Depends(get_library_ai),
) -> Collection:
    """Create a collection curated by the chat model for a learning goal."""
    return await session.run(ai.generate_collection(profile.id, body.goal, session))
