"""Shared FastAPI dependencies: identity, session scope and service wiring."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from s2s.activity import ActivityService
from s2s.ai.client import ChatClient
from s2s.auth.jwt import verify_token
from s2s.catalog.service import GridCache, get_grid_cache
from s2s.config import get_settings
from s2s.documents import DocumentStore
from s2s.errors import NotAuthenticated
from s2s.gamification.engine import AchievementEngine
from s2s.gamification.session_tracker import SessionTracker
from s2s.gamification.streak import resolve_timezone
from s2s.library.service import CollectionsService, LibraryAI, NotesService, SavedVideosService
from s2s.progress.service import ProgressTracker
from s2s.redis_client import get_document_store
from s2s.sessions import SessionRegistry, UserSession, get_session_registry
from s2s.users.schemas import UserProfile
from s2s.users.service import ProfileService

_bearer = HTTPBearer(auto_error=False)


# --- Identity ---


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str:
    """Verify the bearer token and return its subject. Raises NotAuthenticated (401)."""
    if credentials is None or not credentials.credentials:
        msg = "Not authenticated"
        raise NotAuthenticated(msg)
    payload = verify_token(credentials.credentials)
    return str(payload["sub"])


async def get_user_session(
    user_id: str = Depends(get_current_user_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> AsyncGenerator[UserSession, None]:
    """Open a session scope for the request; released when the response is sent."""
    session = registry.open(user_id)
    try:
        yield session
    finally:
        registry.release(session)


# --- Services ---


def get_profile_service(store: DocumentStore = Depends(get_document_store)) -> ProfileService:
    return ProfileService(store)


async def get_current_profile(
    user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserProfile:
    """The caller's profile, created with zeroed counters on first sign-in."""
    profile, _ = await profiles.get_or_create(user_id)
    return profile


def get_achievement_engine(profiles: ProfileService = Depends(get_profile_service)) -> AchievementEngine:
    return AchievementEngine(profiles)


def get_session_tracker(profiles: ProfileService = Depends(get_profile_service)) -> SessionTracker:
    return SessionTracker(profiles, resolve_timezone(get_settings().default_timezone))


def get_progress_tracker(
    profiles: ProfileService = Depends(get_profile_service),
    grid_cache: GridCache = Depends(get_grid_cache),
) -> ProgressTracker:
    settings = get_settings()
    return ProgressTracker(
        profiles,
        grid_cache,
        watch_threshold=settings.watch_threshold,
        videos_per_level_band=settings.videos_per_level_band,
    )


def get_activity_service(
    profiles: ProfileService = Depends(get_profile_service),
    progress: ProgressTracker = Depends(get_progress_tracker),
    tracker: SessionTracker = Depends(get_session_tracker),
    engine: AchievementEngine = Depends(get_achievement_engine),
) -> ActivityService:
    return ActivityService(profiles, progress, tracker, engine)


def get_notes_service(
    store: DocumentStore = Depends(get_document_store),
    engine: AchievementEngine = Depends(get_achievement_engine),
) -> NotesService:
    return NotesService(store, engine)


def get_saved_videos_service(
    store: DocumentStore = Depends(get_document_store),
    grid_cache: GridCache = Depends(get_grid_cache),
) -> SavedVideosService:
    return SavedVideosService(store, grid_cache)


def get_collections_service(
    store: DocumentStore = Depends(get_document_store),
    grid_cache: GridCache = Depends(get_grid_cache),
    engine: AchievementEngine = Depends(get_achievement_engine),
) -> CollectionsService:
    return CollectionsService(store, grid_cache, engine)


@lru_cache
def get_chat_client() -> ChatClient:
    settings = get_settings()
    return ChatClient(
        api_key=settings.ai_api_key,
        base_url=settings.ai_base_url,
        summary_model=settings.ai_summary_model,
        collection_model=settings.ai_collection_model,
        timeout=settings.ai_timeout_seconds,
    )


def get_library_ai(
    client: ChatClient = Depends(get_chat_client),
    notes: NotesService = Depends(get_notes_service),
    collections: CollectionsService = Depends(get_collections_service),
    grid_cache: GridCache = Depends(get_grid_cache),
) -> LibraryAI:
    return LibraryAI(client, notes, collections, grid_cache)
