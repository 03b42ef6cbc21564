"""Document store tests: flattening, merge-writes, increments and watches."""

from __future__ import annotations

import pytest

from s2s.documents import MemoryDocumentStore, deep_merge
from s2s.documents.base import (
    collection_path,
    conflicting_keys,
    document_path,
    flatten,
    merge_patch,
    unflatten,
)
from s2s.errors import NotFound, ValidationError


class TestPaths:
    """Test document and collection path validation."""

    def test_document_path_splits_collection_and_id(self):
        assert document_path("users/abc/studyNotes/n1") == ("users/abc/studyNotes", "n1")

    def test_collection_path_rejects_document(self):
        with pytest.raises(ValueError):
            collection_path("users/abc")

    def test_document_path_rejects_collection(self):
        with pytest.raises(ValueError):
            document_path("users")

    def test_empty_segment_rejected(self):
        with pytest.raises(ValueError):
            document_path("users//abc")


class TestFlatten:
    """Test dotted-key flattening."""

    def test_nested_maps_become_dotted_keys(self):
        flat = flatten({"stats": {"completedVideoCount": 3, "studyStreak": 1}, "email": "a@b.c"})
        assert flat == {"stats.completedVideoCount": 3, "stats.studyStreak": 1, "email": "a@b.c"}

    def test_lists_are_leaves(self):
        assert flatten({"a": {"b": [1, 2]}}) == {"a.b": [1, 2]}

    def test_empty_map_kept_as_leaf(self):
        assert flatten({"progress": {}}) == {"progress": {}}

    def test_dotted_field_name_rejected(self):
        with pytest.raises(ValueError):
            flatten({"a.b": 1})

    def test_unflatten_inverts_flatten(self):
        doc = {"a": {"b": {"c": 1}, "d": [1]}, "e": None, "f": {}}
        assert unflatten(flatten(doc)) == doc


class TestMergePatch:
    """Test merge planning against existing flat keys."""

    def test_conflicting_ancestor_and_descendant(self):
        existing = {"a": 1, "b.c": 2, "b.d": 3}
        assert conflicting_keys(existing, {"a.x"}) == {"a"}
        assert conflicting_keys(existing, {"b"}) == {"b.c", "b.d"}

    def test_empty_map_does_not_clobber(self):
        patch, stale = merge_patch({"achievements.videos.completedVideos": 4}, {"achievements": {}})
        assert patch == {}
        assert stale == set()


class TestMemoryStoreMerge:
    """Merge-writes keep every field they do not name."""

    @pytest.mark.asyncio
    async def test_merge_preserves_unrelated_fields(self, store: MemoryDocumentStore):
        base = {
            "stats": {"completedVideoCount": 7, "studyStreak": 3, "totalWatchTimeSeconds": 900},
            "achievements": {"videos": {"completedVideos": 7, "unlockedMilestones": [1, 5]}},
            "preferences": {"darkMode": True},
        }
        patch = {"achievements": {"streaks": {"currentStreak": 4}}, "stats": {"studyStreak": 4}}
        await store.set("users/u1", base)
        await store.set("users/u1", patch, merge=True)
        assert await store.get("users/u1") == deep_merge(base, patch)

    @pytest.mark.asyncio
    async def test_merge_replaces_leaf_with_map(self, store: MemoryDocumentStore):
        await store.set("users/u1", {"profile": "legacy"})
        await store.set("users/u1", {"profile": {"bio": "hi"}}, merge=True)
        assert await store.get("users/u1") == {"profile": {"bio": "hi"}}

    @pytest.mark.asyncio
    async def test_set_without_merge_replaces(self, store: MemoryDocumentStore):
        await store.set("users/u1", {"a": 1, "b": 2})
        await store.set("users/u1", {"c": 3})
        assert await store.get("users/u1") == {"c": 3}

    @pytest.mark.asyncio
    async def test_merge_creates_missing_document(self, store: MemoryDocumentStore):
        await store.set("users/u1", {"a": {"b": 1}}, merge=True)
        assert await store.get("users/u1") == {"a": {"b": 1}}

    @pytest.mark.asyncio
    async def test_update_requires_existing(self, store: MemoryDocumentStore):
        with pytest.raises(NotFound):
            await store.update("users/missing", {"a": 1})

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, store: MemoryDocumentStore):
        await store.set("users/u1", {"a": {"b": [1]}})
        doc = await store.get("users/u1")
        doc["a"]["b"].append(2)
        assert await store.get("users/u1") == {"a": {"b": [1]}}


class TestMemoryStoreIncrement:
    """Test atomic counter increments."""

    @pytest.mark.asyncio
    async def test_increment_from_missing(self, store: MemoryDocumentStore):
        assert await store.increment("users/u1", "achievements.social.notesCreated") == 1
        assert await store.increment("users/u1", "achievements.social.notesCreated", 4) == 5
        doc = await store.get("users/u1")
        assert doc == {"achievements": {"social": {"notesCreated": 5}}}

    @pytest.mark.asyncio
    async def test_increment_non_integer_rejected(self, store: MemoryDocumentStore):
        await store.set("users/u1", {"email": "a@b.c"})
        with pytest.raises(ValidationError):
            await store.increment("users/u1", "email")


class TestMemoryStoreCollections:
    """Test listing and deletion."""

    @pytest.mark.asyncio
    async def test_list_direct_children_ordered_by_id(self, store: MemoryDocumentStore):
        await store.set("users/u1/studyNotes/b", {"text": "b"})
        await store.set("users/u1/studyNotes/a", {"text": "a"})
        await store.set("users/u1/studyNotes/a/nested/x", {"text": "deep"})
        await store.set("users/u2/studyNotes/c", {"text": "other user"})
        snapshots = await store.list("users/u1/studyNotes")
        assert [s.id for s in snapshots] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, store: MemoryDocumentStore):
        await store.delete("users/u1/studyNotes/none")
        assert store.writes == 0


class TestWatch:
    """Snapshots are full state and delivered latest-wins."""

    @pytest.mark.asyncio
    async def test_initial_snapshot_delivered(self, store: MemoryDocumentStore):
        await store.set("users/u1", {"a": 1})
        async with await store.watch("users/u1") as sub:
            snap = await sub.next()
            assert snap.exists
            assert snap.data == {"a": 1}

    @pytest.mark.asyncio
    async def test_absent_document_snapshot(self, store: MemoryDocumentStore):
        async with await store.watch("users/none") as sub:
            snap = await sub.next()
            assert not snap.exists

    @pytest.mark.asyncio
    async def test_superseded_snapshot_dropped(self, store: MemoryDocumentStore):
        sub = await store.watch("users/u1")
        await store.set("users/u1", {"n": 1})
        await store.set("users/u1", {"n": 2})
        snap = await sub.next()
        assert snap.data == {"n": 2}
        assert sub.dropped == 2
        await sub.close()

    @pytest.mark.asyncio
    async def test_close_releases_listener(self, store: MemoryDocumentStore):
        sub = await store.watch("users/u1")
        col = await store.watch_collection("users")
        assert store.watcher_count() == 2
        await sub.close()
        await col.close()
        assert store.watcher_count() == 0
        with pytest.raises(StopAsyncIteration):
            await sub.next()

    @pytest.mark.asyncio
    async def test_collection_watch_receives_listing(self, store: MemoryDocumentStore):
        async with await store.watch_collection("users/u1/savedVideos") as sub:
            assert await sub.next() == []
            await store.set("users/u1/savedVideos/v1", {"videoId": "v1"})
            listing = await sub.next()
            assert [s.id for s in listing] == ["v1"]

    @pytest.mark.asyncio
    async def test_publish_recorded(self, store: MemoryDocumentStore):
        await store.publish("achievements", {"userId": "u1"})
        assert store.published == [("achievements", {"userId": "u1"})]
