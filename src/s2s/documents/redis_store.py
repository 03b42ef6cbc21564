"""Redis-backed document store.

Layout:
  {prefix}:doc:{path}        HASH  one field per flattened leaf, JSON-encoded
  {prefix}:idx:{collection}  SET   ids of the documents in a collection

Every write publishes ``{"path": ..., "op": ...}`` on
``{pubsub}:doc:{path}`` and ``{pubsub}:col:{collection}``; watchers re-read the
full state on each notification, so a delivered snapshot is always
authoritative at the time it was read.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from s2s.documents.base import (
    DocumentStore,
    Snapshot,
    Subscription,
    collection_path,
    conflicting_keys,
    document_path,
    flatten,
    merge_patch,
    unflatten,
)
from s2s.errors import NotFound, RemoteError, ValidationError

logger = structlog.get_logger()


def encode_fields(flat: dict[str, Any]) -> dict[str, str]:
    return {k: json.dumps(v, separators=(",", ":")) for k, v in flat.items()}


def decode_fields(raw: dict[Any, Any]) -> dict[str, Any]:
    decoded: dict[str, Any] = {}
    for k, v in raw.items():
        key = k.decode() if isinstance(k, bytes) else k
        value = v.decode() if isinstance(v, bytes) else v
        decoded[key] = json.loads(value)
    return decoded


class RedisDocumentStore(DocumentStore):
    """Document store over redis.asyncio hashes, sets and pub/sub."""

    def __init__(self, redis: aioredis.Redis, key_prefix: str = "s2s", pubsub_prefix: str = "pubsub:s2s") -> None:
        self.redis = redis
        self.key_prefix = key_prefix
        self.pubsub_prefix = pubsub_prefix
        self._watch_tasks: set[asyncio.Task[None]] = set()

    # --- Keys ---

    def _doc_key(self, path: str) -> str:
        return f"{self.key_prefix}:doc:{path}"

    def _index_key(self, col: str) -> str:
        return f"{self.key_prefix}:idx:{col}"

    def _doc_channel(self, path: str) -> str:
        return f"{self.pubsub_prefix}:doc:{path}"

    def _col_channel(self, col: str) -> str:
        return f"{self.pubsub_prefix}:col:{col}"

    # --- Reads ---

    async def get(self, path: str) -> dict[str, Any] | None:
        document_path(path)
        key = path.strip("/")
        try:
            raw = await self.redis.hgetall(self._doc_key(key))
        except RedisError as e:
            raise RemoteError(f"Document read failed: {e}") from e
        if not raw:
            return None
        return unflatten(decode_fields(raw))

    async def list(self, path: str) -> list[Snapshot]:
        col = collection_path(path)
        try:
            ids = await self.redis.smembers(self._index_key(col))
            names = sorted(i.decode() if isinstance(i, bytes) else i for i in ids)
            pipe = self.redis.pipeline()
            for doc_id in names:
                pipe.hgetall(self._doc_key(f"{col}/{doc_id}"))
            rows = await pipe.execute()
        except RedisError as e:
            raise RemoteError(f"Collection read failed: {e}") from e
        return [
            Snapshot(f"{col}/{doc_id}", unflatten(decode_fields(raw)))
            for doc_id, raw in zip(names, rows)
            if raw
        ]

    # --- Writes ---

    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        col, doc_id = document_path(path)
        key = path.strip("/")
        doc_key = self._doc_key(key)
        try:
            if merge:
                existing_keys = await self.redis.hkeys(doc_key)
                existing = {k.decode() if isinstance(k, bytes) else k for k in existing_keys}
                patch, stale = merge_patch(dict.fromkeys(existing), data)
            else:
                patch, stale = flatten(data), set()

            pipe = self.redis.pipeline(transaction=True)
            if not merge:
                pipe.delete(doc_key)
            if stale:
                pipe.hdel(doc_key, *stale)
            if patch:
                pipe.hset(doc_key, mapping=encode_fields(patch))
            pipe.sadd(self._index_key(col), doc_id)
            self._publish(pipe, key, col, "set")
            await pipe.execute()
        except RedisError as e:
            raise RemoteError(f"Document write failed: {e}") from e

    async def update(self, path: str, data: dict[str, Any]) -> None:
        document_path(path)
        key = path.strip("/")
        try:
            exists = await self.redis.exists(self._doc_key(key))
        except RedisError as e:
            raise RemoteError(f"Document read failed: {e}") from e
        if not exists:
            msg = f"Document not found: {key}"
            raise NotFound(msg)
        await self.set(key, data, merge=True)

    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        col, doc_id = document_path(path)
        key = path.strip("/")
        doc_key = self._doc_key(key)
        try:
            existing_keys = await self.redis.hkeys(doc_key)
            existing = {k.decode() if isinstance(k, bytes) else k for k in existing_keys}
            stale = conflicting_keys(existing, {field})
            pipe = self.redis.pipeline(transaction=True)
            if stale:
                pipe.hdel(doc_key, *stale)
            pipe.hincrby(doc_key, field, amount)
            pipe.sadd(self._index_key(col), doc_id)
            self._publish(pipe, key, col, "increment")
            results = await pipe.execute()
        except RedisError as e:
            if "not an integer" in str(e):
                raise ValidationError(f"Field {field} is not an integer") from e
            raise RemoteError(f"Document increment failed: {e}") from e
        return int(results[1 if stale else 0])

    async def delete(self, path: str) -> None:
        col, doc_id = document_path(path)
        key = path.strip("/")
        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.delete(self._doc_key(key))
            pipe.srem(self._index_key(col), doc_id)
            self._publish(pipe, key, col, "delete")
            await pipe.execute()
        except RedisError as e:
            raise RemoteError(f"Document delete failed: {e}") from e

    async def publish(self, channel: str, message: dict[str, Any]) -> None:
        try:
            await self.redis.publish(f"{self.pubsub_prefix}:{channel}", json.dumps(message))
        except RedisError as e:
            raise RemoteError(f"Publish failed: {e}") from e

    def _publish(self, pipe: Any, key: str, col: str, op: str) -> None:
        message = json.dumps({"path": key, "op": op})
        pipe.publish(self._doc_channel(key), message)
        pipe.publish(self._col_channel(col), message)

    # --- Watches ---

    async def watch(self, path: str) -> Subscription:
        document_path(path)
        key = path.strip("/")

        async def _read() -> Snapshot:
            return Snapshot(key, await self.get(key))

        return await self._subscribe(self._doc_channel(key), _read)

    async def watch_collection(self, path: str) -> Subscription:
        col = collection_path(path)

        async def _read() -> list[Snapshot]:
            return await self.list(col)

        return await self._subscribe(self._col_channel(col), _read)

    async def _subscribe(self, channel: str, read: Any) -> Subscription:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)

        async def _pump(sub: Subscription) -> None:
            try:
                while not sub.closed:
                    message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                    if message is None:
                        continue
                    try:
                        sub.push(await read())
                    except RemoteError:
                        logger.warning("document_watch_read_failed", channel=channel, exc_info=True)
            except asyncio.CancelledError:
                pass

        task: asyncio.Task[None] | None = None

        async def _release(_sub: Subscription) -> None:
            if task is not None:
                task.cancel()
                self._watch_tasks.discard(task)
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except RedisError:
                logger.warning("document_watch_release_failed", channel=channel, exc_info=True)

        sub = Subscription(on_close=_release)
        sub.push(await read())
        task = asyncio.create_task(_pump(sub))
        self._watch_tasks.add(task)
        logger.debug("document_watch_started", channel=channel)
        return sub

    async def close(self) -> None:
        for task in list(self._watch_tasks):
            task.cancel()
        self._watch_tasks.clear()
