"""Library tests: notes, saved videos and collections."""

from __future__ import annotations

import pytest
import pytest_asyncio

from s2s.catalog.service import GridCache
from s2s.documents import MemoryDocumentStore
from s2s.errors import DecodeError, NotFound
from s2s.gamification.engine import AchievementEngine
from s2s.library.service import CollectionsService, NotesService, SavedVideosService
from s2s.users.service import ProfileService


@pytest_asyncio.fixture
async def user(profiles: ProfileService) -> str:
    await profiles.create("u1")
    return "u1"


@pytest.fixture
def notes(store: MemoryDocumentStore, engine: AchievementEngine) -> NotesService:
    return NotesService(store, engine)


@pytest.fixture
def saved(store: MemoryDocumentStore, grid_cache: GridCache) -> SavedVideosService:
    return SavedVideosService(store, grid_cache)


@pytest.fixture
def collections(store: MemoryDocumentStore, grid_cache: GridCache, engine: AchievementEngine) -> CollectionsService:
    return CollectionsService(store, grid_cache, engine)


class TestNotes:
    """Test note CRUD and the note-taking counter."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, user, notes: NotesService, store: MemoryDocumentStore):
        note = await notes.create(user, "Derivatives measure change", "math-1")
        fetched = await notes.get(user, note.id)
        assert fetched.original_text == "Derivatives measure change"
        assert fetched.video_id == "math-1"
        assert fetched.summary is None

        stored = await store.get(f"users/u1/studyNotes/{note.id}")
        assert stored["originalText"] == "Derivatives measure change"
        assert "id" not in stored

    @pytest.mark.asyncio
    async def test_create_counts_social_activity(self, user, notes: NotesService, profiles: ProfileService):
        for i in range(5):
            await notes.create(user, f"note {i}")
        social = (await profiles.require(user)).achievements.social
        assert social.created_notes == 5
        assert social.unlocked_milestones == {"createdNotes:5"}

    @pytest.mark.asyncio
    async def test_list_newest_first_and_by_video(self, user, notes: NotesService):
        first = await notes.create(user, "first", "math-1")
        second = await notes.create(user, "second", "art-1")
        third = await notes.create(user, "third", "math-1")

        assert [n.id for n in await notes.list(user)] == [third.id, second.id, first.id]
        assert [n.id for n in await notes.list_for_video(user, "math-1")] == [third.id, first.id]

    @pytest.mark.asyncio
    async def test_update_text_and_summary(self, user, notes: NotesService):
        note = await notes.create(user, "draft")
        updated = await notes.update_text(user, note.id, "final")
        assert updated.original_text == "final"
        assert updated.updated_at >= note.updated_at

        summarized = await notes.update_summary(user, note.id, "short")
        assert summarized.summary == "short"
        assert summarized.original_text == "final"

    @pytest.mark.asyncio
    async def test_delete(self, user, notes: NotesService):
        note = await notes.create(user, "temp")
        await notes.delete(user, note.id)
        with pytest.raises(NotFound):
            await notes.get(user, note.id)
        with pytest.raises(NotFound):
            await notes.delete(user, note.id)

    @pytest.mark.asyncio
    async def test_malformed_note_fails_closed(self, user, notes: NotesService, store: MemoryDocumentStore):
        await store.set("users/u1/studyNotes/bad", {"originalText": "no timestamps"})
        with pytest.raises(DecodeError):
            await notes.get(user, "bad")


class TestSavedVideos:
    """Saved videos snapshot catalog metadata."""

    @pytest.mark.asyncio
    async def test_save_and_status(self, user, saved: SavedVideosService, store: MemoryDocumentStore):
        video = await saved.save(user, "art-2")
        assert video.title == "Art 2"
        assert video.subject == "art"
        assert await saved.is_saved(user, "art-2")
        assert not await saved.is_saved(user, "math-1")

        stored = await store.get("users/u1/savedVideos/art-2")
        assert stored["thumbnailURL"] == "https://cdn.example.com/art-2.jpg"
        assert stored["videoURL"] == "https://cdn.example.com/art-2.mp4"

    @pytest.mark.asyncio
    async def test_save_unknown_video(self, user, saved: SavedVideosService):
        with pytest.raises(NotFound):
            await saved.save(user, "nope")

    @pytest.mark.asyncio
    async def test_list_and_remove(self, user, saved: SavedVideosService):
        await saved.save(user, "math-1")
        await saved.save(user, "math-2")
        assert [v.id for v in await saved.list(user)] == ["math-2", "math-1"]

        await saved.remove(user, "math-2")
        await saved.remove(user, "math-2")
        assert [v.id for v in await saved.list(user)] == ["math-1"]


class TestCollections:
    """Collections keep ordered, unique video ids and a thumbnail."""

    @pytest.mark.asyncio
    async def test_create_counts_social_activity(self, user, collections: CollectionsService, profiles: ProfileService):
        collection = await collections.create(user, "Calculus", "Limits first")
        assert collection.video_ids == []
        assert collection.thumbnail_url == ""
        assert (await profiles.require(user)).achievements.social.created_collections == 1

    @pytest.mark.asyncio
    async def test_add_video_sets_thumbnail_once(self, user, collections: CollectionsService):
        collection = await collections.create(user, "Calculus")
        collection = await collections.add_video(user, collection.id, "math-2")
        assert collection.thumbnail_url == "https://cdn.example.com/math-2.jpg"

        collection = await collections.add_video(user, collection.id, "math-3")
        collection = await collections.add_video(user, collection.id, "math-2")
        assert collection.video_ids == ["math-2", "math-3"]
        assert collection.thumbnail_url == "https://cdn.example.com/math-2.jpg"

    @pytest.mark.asyncio
    async def test_remove_last_video_clears_thumbnail(self, user, collections: CollectionsService):
        collection = await collections.create(user, "Art")
        await collections.add_video(user, collection.id, "art-1")
        await collections.add_video(user, collection.id, "art-2")

        collection = await collections.remove_video(user, collection.id, "art-1")
        assert collection.video_ids == ["art-2"]
        assert collection.thumbnail_url == "https://cdn.example.com/art-1.jpg"

        collection = await collections.remove_video(user, collection.id, "art-2")
        assert collection.video_ids == []
        assert collection.thumbnail_url == ""

    @pytest.mark.asyncio
    async def test_add_unknown_video(self, user, collections: CollectionsService):
        collection = await collections.create(user, "Art")
        with pytest.raises(NotFound):
            await collections.add_video(user, collection.id, "nope")

    @pytest.mark.asyncio
    async def test_list_most_recently_updated_first(self, user, collections: CollectionsService):
        older = await collections.create(user, "Older")
        newer = await collections.create(user, "Newer")
        await collections.add_video(user, older.id, "math-1")
        assert [c.id for c in await collections.list(user)] == [older.id, newer.id]

    @pytest.mark.asyncio
    async def test_delete(self, user, collections: CollectionsService):
        collection = await collections.create(user, "Temp")
        await collections.delete(user, collection.id)
        assert await collections.list(user) == []
        with pytest.raises(NotFound):
            await collections.get(user, collection.id)
