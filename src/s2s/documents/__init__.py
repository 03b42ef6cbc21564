"""Document storage: store interface and backends."""

from s2s.documents.base import DocumentStore, Snapshot, Subscription, deep_merge
from s2s.documents.memory import MemoryDocumentStore
from s2s.documents.redis_store import RedisDocumentStore

__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "RedisDocumentStore",
    "Snapshot",
    "Subscription",
    "deep_merge",
]
