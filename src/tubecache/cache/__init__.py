"""Cache subsystem: SQLite store with expiry, size accounting and eviction."""

from tubecache.cache.engine import CacheEngine
from tubecache.cache.entry import CacheEntry, CacheStatistics
from tubecache.cache.keys import channel_key, list_key, video_key
from tubecache.cache.store import DurableStore

__all__ = [
    "CacheEngine",
    "CacheEntry",
    "CacheStatistics",
    "DurableStore",
    "channel_key",
    "list_key",
    "video_key",
]
