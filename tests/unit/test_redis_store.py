"""Redis document store tests against a mocked client."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from s2s.documents import RedisDocumentStore
from s2s.documents.redis_store import decode_fields, encode_fields
from s2s.errors import NotFound, RemoteError, ValidationError


def _mock_redis(existing_keys: list[bytes] | None = None, results: list | None = None):
    redis = MagicMock()
    redis.hkeys = AsyncMock(return_value=existing_keys or [])
    redis.hgetall = AsyncMock(return_value={})
    redis.exists = AsyncMock(return_value=1)
    redis.publish = AsyncMock(return_value=1)
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=results or [])
    redis.pipeline = MagicMock(return_value=pipe)
    return redis, pipe


class TestFieldCodec:
    """Hash fields are JSON-encoded leaves."""

    def test_encode_decode(self):
        encoded = encode_fields({"stats.studyStreak": 3, "email": "a@b.c", "ids": [1, 2]})
        assert encoded["stats.studyStreak"] == "3"
        raw = {k.encode(): v.encode() for k, v in encoded.items()}
        assert decode_fields(raw) == {"stats.studyStreak": 3, "email": "a@b.c", "ids": [1, 2]}


class TestRedisGet:
    """Test document reads."""

    @pytest.mark.asyncio
    async def test_get_unflattens(self):
        redis, _ = _mock_redis()
        redis.hgetall.return_value = {b"stats.studyStreak": b"2", b"email": b'"a@b.c"'}
        store = RedisDocumentStore(redis)
        assert await store.get("users/u1") == {"stats": {"studyStreak": 2}, "email": "a@b.c"}
        redis.hgetall.assert_awaited_once_with("s2s:doc:users/u1")

    @pytest.mark.asyncio
    async def test_missing_document(self):
        redis, _ = _mock_redis()
        assert await RedisDocumentStore(redis).get("users/u1") is None

    @pytest.mark.asyncio
    async def test_connection_error_is_remote_error(self):
        redis, _ = _mock_redis()
        redis.hgetall.side_effect = RedisConnectionError("down")
        with pytest.raises(RemoteError):
            await RedisDocumentStore(redis).get("users/u1")


class TestRedisMerge:
    """Test merge-writes against existing hash fields."""

    @pytest.mark.asyncio
    async def test_merge_drops_conflicting_fields_only(self):
        redis, pipe = _mock_redis(existing_keys=[b"profile", b"stats.studyStreak"])
        store = RedisDocumentStore(redis)
        await store.set("users/u1", {"profile": {"bio": "hi"}}, merge=True)

        pipe.delete.assert_not_called()
        pipe.hdel.assert_called_once_with("s2s:doc:users/u1", "profile")
        pipe.hset.assert_called_once_with("s2s:doc:users/u1", mapping={"profile.bio": '"hi"'})
        pipe.sadd.assert_called_once_with("s2s:idx:users", "u1")

    @pytest.mark.asyncio
    async def test_replace_deletes_hash_first(self):
        redis, pipe = _mock_redis()
        await RedisDocumentStore(redis).set("users/u1", {"a": 1})
        pipe.delete.assert_called_once_with("s2s:doc:users/u1")
        pipe.hdel.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_publishes_change(self):
        redis, pipe = _mock_redis()
        await RedisDocumentStore(redis, pubsub_prefix="ps").set("users/u1/studyNotes/n1", {"a": 1})
        channels = [c.args[0] for c in pipe.publish.call_args_list]
        assert channels == ["ps:doc:users/u1/studyNotes/n1", "ps:col:users/u1/studyNotes"]
        assert json.loads(pipe.publish.call_args_list[0].args[1]) == {
            "path": "users/u1/studyNotes/n1",
            "op": "set",
        }

    @pytest.mark.asyncio
    async def test_update_missing_is_not_found(self):
        redis, _ = _mock_redis()
        redis.exists.return_value = 0
        with pytest.raises(NotFound):
            await RedisDocumentStore(redis).update("users/u1", {"a": 1})


class TestRedisIncrement:
    """Test HINCRBY increments."""

    @pytest.mark.asyncio
    async def test_increment_returns_new_value(self):
        redis, pipe = _mock_redis(results=[4, 1, 1, 1])
        value = await RedisDocumentStore(redis).increment("users/u1", "achievements.social.notesCreated")
        assert value == 4
        pipe.hincrby.assert_called_once_with("s2s:doc:users/u1", "achievements.social.notesCreated", 1)

    @pytest.mark.asyncio
    async def test_increment_after_stale_cleanup(self):
        redis, pipe = _mock_redis(existing_keys=[b"achievements.social"], results=[1, 9, 1, 1, 1])
        value = await RedisDocumentStore(redis).increment("users/u1", "achievements.social.notesCreated")
        assert value == 9
        pipe.hdel.assert_called_once_with("s2s:doc:users/u1", "achievements.social")

    @pytest.mark.asyncio
    async def test_non_integer_field(self):
        redis, pipe = _mock_redis()
        pipe.execute.side_effect = ResponseError("hash value is not an integer")
        with pytest.raises(ValidationError):
            await RedisDocumentStore(redis).increment("users/u1", "email")


class TestRedisPublish:
    """Test application notifications."""

    @pytest.mark.asyncio
    async def test_publish_uses_prefix(self):
        redis, _ = _mock_redis()
        await RedisDocumentStore(redis, pubsub_prefix="ps").publish("achievements", {"userId": "u1"})
        redis.publish.assert_awaited_once_with("ps:achievements", json.dumps({"userId": "u1"}))

    @pytest.mark.asyncio
    async def test_publish_failure_is_remote_error(self):
        redis, _ = _mock_redis()
        redis.publish.side_effect = RedisConnectionError("down")
        with pytest.raises(RemoteError):
            await RedisDocumentStore(redis).publish("achievements", {})
