"""Path-addressed document store abstraction.

Documents live at paths with an even number of segments
(``users/abc``, ``users/abc/studyNotes/n1``); collections at paths with an odd
number (``users``, ``users/abc/studyNotes``). Document bodies are JSON-compatible
dicts. Backends persist them in *flattened* form, one dotted key per leaf
(``stats.completedVideoCount``), which is what makes merge-writes touch only
the fields they name.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

_MISSING = object()


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def split_path(path: str) -> list[str]:
    """Split a slash-separated path, rejecting empty segments."""
    parts = path.strip("/").split("/")
    if not parts or any(not p for p in parts):
        msg = f"Invalid document path: {path!r}"
        raise ValueError(msg)
    return parts


def document_path(path: str) -> tuple[str, str]:
    """Validate a document path and return ``(collection_path, doc_id)``."""
    parts = split_path(path)
    if len(parts) % 2 != 0:
        msg = f"Not a document path: {path!r}"
        raise ValueError(msg)
    return "/".join(parts[:-1]), parts[-1]


def collection_path(path: str) -> str:
    """Validate and normalise a collection path."""
    parts = split_path(path)
    if len(parts) % 2 != 1:
        msg = f"Not a collection path: {path!r}"
        raise ValueError(msg)
    return "/".join(parts)


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------


def flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested dicts into dotted keys. Lists and scalars are leaves.

    An empty nested dict is kept as a ``{}`` leaf so the field stays present.
    """
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if not isinstance(key, str) or not key or "." in key:
            msg = f"Invalid field name: {key!r}"
            raise ValueError(msg)
        dotted = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            flat.update(flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def unflatten(flat: dict[str, Any]) -> dict[str, Any]:
    """Rebuild a nested dict from dotted keys."""
    result: dict[str, Any] = {}
    for dotted in sorted(flat):
        node = result
        parts = dotted.split(".")
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        leaf = parts[-1]
        value = flat[dotted]
        if isinstance(node.get(leaf), dict) and value == {}:
            continue
        node[leaf] = value
    return result


def conflicting_keys(existing: set[str] | dict[str, Any], new_keys: set[str] | dict[str, Any]) -> set[str]:
    """Existing flat keys that a write of ``new_keys`` must remove.

    A key conflicts when it is an ancestor or a descendant of a written key,
    i.e. the field changes between leaf and map shape.
    """
    stale: set[str] = set()
    for key in new_keys:
        parts = key.split(".")
        for i in range(1, len(parts)):
            ancestor = ".".join(parts[:i])
            if ancestor in existing:
                stale.add(ancestor)
        descendant_prefix = f"{key}."
        stale.update(k for k in existing if k.startswith(descendant_prefix))
    return stale


def merge_patch(existing: dict[str, Any], data: dict[str, Any]) -> tuple[dict[str, Any], set[str]]:
    """Compute the flat fields to write and the flat keys to delete for a merge.

    ``{}`` values never clobber an existing sub-map.
    """
    patch = flatten(data)
    for key, value in list(patch.items()):
        if value == {} and any(k.startswith(f"{key}.") for k in existing):
            del patch[key]
    return patch, conflicting_keys(existing, patch)


def deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``patch`` merged in; nested dicts merge key by key."""
    merged = dict(base)
    for key, value in patch.items():
        current = merged.get(key, _MISSING)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# Snapshots and subscriptions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Snapshot:
    """Full state of one document at read time. ``data`` is None when absent."""

    path: str
    data: dict[str, Any] | None

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def exists(self) -> bool:
        return self.data is not None


class Subscription:
    """Cancellable stream of full-state snapshots with latest-wins delivery.

    Only the newest undelivered item is kept: a snapshot that is superseded
    before the consumer reads it is dropped. Use as an async context manager
    so the underlying listener is always released.
    """

    def __init__(self, on_close: Callable[[Subscription], Awaitable[None]] | None = None) -> None:
        self._on_close = on_close
        self._pending: Any = _MISSING
        self._ready = asyncio.Event()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, item: Any) -> None:
        """Offer a new snapshot, superseding any undelivered one."""
        if self._closed:
            return
        if self._pending is not _MISSING:
            self.dropped += 1
        self._pending = item
        self._ready.set()

    async def next(self) -> Any:
        """Wait for the next snapshot. Raises StopAsyncIteration once closed."""
        while self._pending is _MISSING:
            if self._closed:
                raise StopAsyncIteration
            await self._ready.wait()
            self._ready.clear()
        item, self._pending = self._pending, _MISSING
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pending = _MISSING
        self._ready.set()
        if self._on_close is not None:
            await self._on_close(self)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        return await self.next()

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Store interface
# ---------------------------------------------------------------------------


class DocumentStore(ABC):
    """Abstract document store with merge-write semantics."""

    @abstractmethod
    async def get(self, path: str) -> dict[str, Any] | None:
        """Return the document body, or None if it does not exist."""
        ...

    @abstractmethod
    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        """Write a document. ``merge=True`` keeps fields not named in ``data``."""
        ...

    @abstractmethod
    async def update(self, path: str, data: dict[str, Any]) -> None:
        """Merge into an existing document. Raises NotFound if it is absent."""
        ...

    @abstractmethod
    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to a dotted integer field; returns the new value."""
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a document (no-op when absent)."""
        ...

    @abstractmethod
    async def list(self, path: str) -> list[Snapshot]:
        """List the existing documents of a collection, ordered by id."""
        ...

    @abstractmethod
    async def watch(self, path: str) -> Subscription:
        """Subscribe to a document. The current state is delivered first."""
        ...

    @abstractmethod
    async def watch_collection(self, path: str) -> Subscription:
        """Subscribe to a collection; each item is the full ``list[Snapshot]``."""
        ...

    @abstractmethod
    async def publish(self, channel: str, message: dict[str, Any]) -> None:
        """Send an application notification (e.g. ``achievements``) to listeners."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""
