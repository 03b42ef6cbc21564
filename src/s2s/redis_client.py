"""Redis connection pool and the process-wide document store."""

import redis.asyncio as redis

from s2s.config import Settings
from s2s.documents import DocumentStore, MemoryDocumentStore, RedisDocumentStore

_pool: redis.Redis | None = None
_store: DocumentStore | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


async def close_redis() -> None:
    """Close the document store and the Redis connection pool."""
    global _pool, _store  # noqa: PLW0603
    if _store:
        await _store.close()
        _store = None
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def init_document_store(settings: Settings) -> DocumentStore:
    """Create the document store selected by ``settings.document_backend``."""
    global _store  # noqa: PLW0603
    if settings.document_backend == "memory":
        _store = MemoryDocumentStore()
    else:
        _store = RedisDocumentStore(
            get_redis(),
            key_prefix=settings.document_key_prefix,
            pubsub_prefix=settings.pubsub_prefix,
        )
    return _store


def get_document_store() -> DocumentStore:
    """Get the document store (FastAPI dependency)."""
    if _store is None:
        msg = "Document store not initialized. Call init_document_store() first."
        raise RuntimeError(msg)
    return _store
