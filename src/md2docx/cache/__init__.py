"""Cache subsystem — disk store with content-addressed keys."""

from md2docx.cache.keys import hash_source
from md2docx.cache.stats import CacheEntry, CacheStats
from md2docx.cache.store import CacheStore

__all__ = [
    "CacheStore",
    "CacheEntry",
    "CacheStats",
    "hash_source",
]
