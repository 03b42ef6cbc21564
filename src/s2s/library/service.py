"""User library: study notes, saved videos and collections.

Documents:
  users/{uid}/studyNotes/{noteId}
  users/{uid}/savedVideos/{videoId}
  users/{uid}/collections/{collectionId}
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from s2s.errors import NotFound
from s2s.library.schemas import Collection, SavedVideo, StudyNote, decode, to_document

if TYPE_CHECKING:
    from collections.abc import Iterable

    from s2s.ai.client import ChatClient
    from s2s.catalog.grid import CatalogItem
    from s2s.catalog.service import GridCache
    from s2s.documents.base import DocumentStore, Snapshot, Subscription
    from s2s.gamification.engine import AchievementEngine
    from s2s.sessions import UserSession

logger = structlog.get_logger()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check(session: UserSession | None) -> None:
    if session is not None:
        session.ensure_active()


async def _catalog_item(grid_cache: GridCache, video_id: str) -> CatalogItem:
    item = (await grid_cache.get()).find(video_id)
    if item is None:
        msg = f"Video not found: {video_id}"
        raise NotFound(msg)
    return item


# ---------------------------------------------------------------------------
# Study notes
# ---------------------------------------------------------------------------


class NotesService:
    def __init__(self, store: DocumentStore, engine: AchievementEngine) -> None:
        self.store = store
        self.engine = engine

    @staticmethod
    def _collection(user_id: str) -> str:
        return f"users/{user_id}/studyNotes"

    def _path(self, user_id: str, note_id: str) -> str:
        return f"{self._collection(user_id)}/{note_id}"

    async def create(
        self,
        user_id: str,
        original_text: str,
        video_id: str = "",
        summary: str | None = None,
        session: UserSession | None = None,
    ) -> StudyNote:
        """Create a note and count it towards the note-taking achievements."""
        now = _now()
        note = StudyNote(
            id=str(uuid.uuid4()),
            user_id=user_id,
            video_id=video_id,
            original_text=original_text,
            summary=summary,
            created_at=now,
            updated_at=now,
        )
        _check(session)
        await self.store.set(self._path(user_id, note.id), to_document(note))
        logger.info("note_created", user_id=user_id, note_id=note.id, video_id=video_id or None)
        await self.engine.record_social_activity(user_id, "notes", session)
        return note

    async def get(self, user_id: str, note_id: str) -> StudyNote:
        data = await self.store.get(self._path(user_id, note_id))
        if data is None:
            msg = f"Note not found: {note_id}"
            raise NotFound(msg)
        return decode(StudyNote, note_id, data)

    async def list(self, user_id: str) -> list[StudyNote]:
        """All notes, newest first."""
        notes = [decode(StudyNote, s.id, s.data) for s in await self.store.list(self._collection(user_id)) if s.data]
        return sorted(notes, key=lambda n: n.created_at, reverse=True)

    async def list_for_video(self, user_id: str, video_id: str) -> list[StudyNote]:
        return [n for n in await self.list(user_id) if n.video_id == video_id]

    async def update_text(
        self, user_id: str, note_id: str, original_text: str, session: UserSession | None = None
    ) -> StudyNote:
        await self.get(user_id, note_id)
        _check(session)
        await self.store.update(
            self._path(user_id, note_id),
            {"originalText": original_text, "updatedAt": _now().isoformat()},
        )
        return await self.get(user_id, note_id)

    async def update_summary(
        self, user_id: str, note_id: str, summary: str, session: UserSession | None = None
    ) -> StudyNote:
        await self.get(user_id, note_id)
        _check(session)
        await self.store.update(
            self._path(user_id, note_id),
            {"summary": summary, "updatedAt": _now().isoformat()},
        )
        return await self.get(user_id, note_id)

    async def delete(self, user_id: str, note_id: str, session: UserSession | None = None) -> None:
        await self.get(user_id, note_id)
        _check(session)
        await self.store.delete(self._path(user_id, note_id))
        logger.info("note_deleted", user_id=user_id, note_id=note_id)


# ---------------------------------------------------------------------------
# Saved videos
# ---------------------------------------------------------------------------


class SavedVideosService:
    def __init__(self, store: DocumentStore, grid_cache: GridCache) -> None:
        self.store = store
        self.grid_cache = grid_cache

    @staticmethod
    def _collection(user_id: str) -> str:
        return f"users/{user_id}/savedVideos"

    async def save(self, user_id: str, video_id: str, session: UserSession | None = None) -> SavedVideo:
        item = await _catalog_item(self.grid_cache, video_id)
        saved = SavedVideo(
            id=item.id,
            title=item.title,
            thumbnail_url=item.thumbnail_url,
            video_url=item.video_url,
            saved_at=_now(),
            duration=item.duration_seconds,
            subject=item.subject,
        )
        _check(session)
        await self.store.set(f"{self._collection(user_id)}/{video_id}", to_document(saved))
        logger.info("video_saved", user_id=user_id, video_id=video_id)
        return saved

    async def remove(self, user_id: str, video_id: str, session: UserSession | None = None) -> None:
        _check(session)
        await self.store.delete(f"{self._collection(user_id)}/{video_id}")

    async def is_saved(self, user_id: str, video_id: str) -> bool:
        return await self.store.get(f"{self._collection(user_id)}/{video_id}") is not None

    async def list(self, user_id: str) -> list[SavedVideo]:
        """Saved videos, most recently saved first."""
        videos = [decode(SavedVideo, s.id, s.data) for s in await self.store.list(self._collection(user_id)) if s.data]
        return sorted(videos, key=lambda v: v.saved_at, reverse=True)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


def decode_collections(snapshots: Iterable[Snapshot]) -> list[Collection]:
    collections = [decode(Collection, s.id, s.data) for s in snapshots if s.data]
    return sorted(collections, key=lambda c: c.updated_at, reverse=True)


class CollectionsService:
    def __init__(self, store: DocumentStore, grid_cache: GridCache, engine: AchievementEngine) -> None:
        self.store = store
        self.grid_cache = grid_cache
        self.engine = engine

    @staticmethod
    def _collection(user_id: str) -> str:
        return f"users/{user_id}/collections"

    def _path(self, user_id: str, collection_id: str) -> str:
        return f"{self._collection(user_id)}/{collection_id}"

    async def create(
        self,
        user_id: str,
        name: str,
        description: str = "",
        session: UserSession | None = None,
    ) -> Collection:
        now = _now()
        collection = Collection(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        _check(session)
        await self.store.set(self._path(user_id, collection.id), to_document(collection))
        logger.info("collection_created", user_id=user_id, collection_id=collection.id)
        await self.engine.record_social_activity(user_id, "collections", session)
        return collection

    async def get(self, user_id: str, collection_id: str) -> Collection:
        data = await self.store.get(self._path(user_id, collection_id))
        if data is None:
            msg = f"Collection not found: {collection_id}"
            raise NotFound(msg)
        return decode(Collection, collection_id, data)

    async def list(self, user_id: str) -> list[Collection]:
        """Collections, most recently updated first."""
        return decode_collections(await self.store.list(self._collection(user_id)))

    async def watch(self, user_id: str) -> Subscription:
        """Subscribe to the user's collections. Items are ``list[Snapshot]``; see ``decode_collections``."""
        return await self.store.watch_collection(self._collection(user_id))

    async def add_video(
        self, user_id: str, collection_id: str, video_id: str, session: UserSession | None = None
    ) -> Collection:
        """Append a video (no-op if present). The first video sets the thumbnail."""
        collection = await self.get(user_id, collection_id)
        if video_id in collection.video_ids:
            return collection

        item = await _catalog_item(self.grid_cache, video_id)
        video_ids = [*collection.video_ids, video_id]
        patch: dict = {"videoIds": video_ids, "updatedAt": _now().isoformat()}
        if len(video_ids) == 1:
            patch["thumbnailUrl"] = item.thumbnail_url
        _check(session)
        await self.store.update(self._path(user_id, collection_id), patch)
        return await self.get(user_id, collection_id)

    async def remove_video(
        self, user_id: str, collection_id: str, video_id: str, session: UserSession | None = None
    ) -> Collection:
        """Remove a video (no-op if absent). Removing the last one clears the thumbnail."""
        collection = await self.get(user_id, collection_id)
        if video_id not in collection.video_ids:
            return collection

        video_ids = [v for v in collection.video_ids if v != video_id]
        patch: dict = {"videoIds": video_ids, "updatedAt": _now().isoformat()}
        if not video_ids:
            patch["thumbnailUrl"] = ""
        _check(session)
        await self.store.update(self._path(user_id, collection_id), patch)
        return await self.get(user_id, collection_id)

    async def delete(self, user_id: str, collection_id: str, session: UserSession | None = None) -> None:
        await self.get(user_id, collection_id)
        _check(session)
        await self.store.delete(self._path(user_id, collection_id))
        logger.info("collection_deleted", user_id=user_id, collection_id=collection_id)


# ---------------------------------------------------------------------------
# AI-assisted actions
# ---------------------------------------------------------------------------


class LibraryAI:
    """Note summaries and AI-curated collections. Nothing is written on failure."""

    def __init__(
        self,
        client: ChatClient,
        notes: NotesService,
        collections: CollectionsService,
        grid_cache: GridCache,
    ) -> None:
        self.client = client
        self.notes = notes
        self.collections = collections
        self.grid_cache = grid_cache

    async def summarize_note(
        self, user_id: str, text: str, video_id: str = "", session: UserSession | None = None
    ) -> StudyNote:
        summary = await self.client.summarize_note(text)
        return await self.notes.create(user_id, text, video_id, summary=summary, session=session)

    async def generate_collection(
        self, user_id: str, goal: str, session: UserSession | None = None
    ) -> Collection:
        """Create a collection from the model's picks, keeping only ids in the catalog."""
        grid = await self.grid_cache.get()
        suggestion = await self.client.curate_collection(goal, grid.videos.values())

        video_ids: list[str] = []
        for vid in suggestion.videoIds:
            if vid in grid.videos and vid not in video_ids:
                video_ids.append(vid)
        dropped = len(suggestion.videoIds) - len(video_ids)
        if dropped:
            logger.info("ai_collection_ids_dropped", user_id=user_id, dropped=dropped)

        collection = await self.collections.create(user_id, suggestion.name, suggestion.description, session)
        for vid in video_ids:
            collection = await self.collections.add_video(user_id, collection.id, vid, session)
        logger.info("ai_collection_generated", user_id=user_id, collection_id=collection.id, videos=len(video_ids))
        return collection
