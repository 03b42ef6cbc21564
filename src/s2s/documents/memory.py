"""In-process document store for tests and local development."""

from __future__ import annotations

import copy
from collections import defaultdict
from typing import Any

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
from s2s.errors import NotFound, ValidationError


class MemoryDocumentStore(DocumentStore):
    """Dict-backed store with the same flattened merge semantics as the Redis backend."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._doc_watchers: dict[str, set[Subscription]] = defaultdict(set)
        self._col_watchers: dict[str, set[Subscription]] = defaultdict(set)
        self.writes = 0
        self.published: list[tuple[str, dict[str, Any]]] = []

    # --- Reads ---

    async def get(self, path: str) -> dict[str, Any] | None:
        document_path(path)
        flat = self._docs.get(path.strip("/"))
        return copy.deepcopy(unflatten(flat)) if flat is not None else None

    async def list(self, path: str) -> list[Snapshot]:
        return self._list(collection_path(path))

    def _list(self, col: str) -> list[Snapshot]:
        prefix = f"{col}/"
        snapshots = []
        for key in sorted(self._docs):
            if key.startswith(prefix) and "/" not in key[len(prefix):]:
                snapshots.append(Snapshot(key, copy.deepcopy(unflatten(self._docs[key]))))
        return snapshots

    # --- Writes ---

    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        col, _ = document_path(path)
        key = path.strip("/")
        existing = self._docs.get(key)
        if merge and existing is not None:
            patch, stale = merge_patch(existing, data)
            for k in stale:
                existing.pop(k, None)
            existing.update(copy.deepcopy(patch))
        else:
            self._docs[key] = copy.deepcopy(flatten(data))
        self._changed(key, col)

    async def update(self, path: str, data: dict[str, Any]) -> None:
        key = path.strip("/")
        document_path(key)
        if key not in self._docs:
            msg = f"Document not found: {key}"
            raise NotFound(msg)
        await self.set(key, data, merge=True)

    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        col, _ = document_path(path)
        key = path.strip("/")
        flat = self._docs.setdefault(key, {})
        current = flat.get(field, 0)
        if not isinstance(current, int) or isinstance(current, bool):
            msg = f"Field {field} is not an integer"
            raise ValidationError(msg)
        for k in conflicting_keys(flat, {field}):
            flat.pop(k, None)
        flat[field] = current + amount
        self._changed(key, col)
        return flat[field]

    async def delete(self, path: str) -> None:
        col, _ = document_path(path)
        key = path.strip("/")
        if self._docs.pop(key, None) is not None:
            self._changed(key, col)

    async def publish(self, channel: str, message: dict[str, Any]) -> None:
        self.published.append((channel, copy.deepcopy(message)))

    # --- Watches ---

    async def watch(self, path: str) -> Subscription:
        document_path(path)
        key = path.strip("/")

        async def _release(sub: Subscription) -> None:
            self._doc_watchers[key].discard(sub)

        sub = Subscription(on_close=_release)
        self._doc_watchers[key].add(sub)
        sub.push(self._snapshot(key))
        return sub

    async def watch_collection(self, path: str) -> Subscription:
        col = collection_path(path)

        async def _release(sub: Subscription) -> None:
            self._col_watchers[col].discard(sub)

        sub = Subscription(on_close=_release)
        self._col_watchers[col].add(sub)
        sub.push(self._list(col))
        return sub

    def watcher_count(self) -> int:
        return sum(len(s) for s in self._doc_watchers.values()) + sum(
            len(s) for s in self._col_watchers.values()
        )

    def _snapshot(self, key: str) -> Snapshot:
        flat = self._docs.get(key)
        return Snapshot(key, copy.deepcopy(unflatten(flat)) if flat is not None else None)

    def _changed(self, key: str, col: str) -> None:
        self.writes += 1
        for sub in list(self._doc_watchers.get(key, ())):
            sub.push(self._snapshot(key))
        if self._col_watchers.get(col):
            listing = self._list(col)
            for sub in list(self._col_watchers[col]):
                sub.push(listing)
