"""Content-addressable disk cache with TTL and total-size eviction.

Layout on disk::

    <cache_dir>/index.json   key -> {timestamp, size, metadata}
    <cache_dir>/<key>        one blob per key

The index is loaded wholesale at startup and rewritten wholesale after every
mutation. Index mutation is serialized with a lock so concurrent resolutions
inside one process never lose updates; separate processes sharing a cache
directory are not coordinated.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from md2docx.cache.stats import CacheEntry, CacheStats
from md2docx.config.defaults import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CACHE_MAX_AGE,
    DEFAULT_CACHE_MAX_SIZE,
)
from md2docx.errors.exceptions import CacheIOError

logger = logging.getLogger(__name__)

_INDEX_NAME = "index.json"


class CacheStore:
    """Disk-backed byte cache keyed by content hash."""

    def __init__(
        self,
        cache_dir: str | Path | None = None,
        max_age: float = DEFAULT_CACHE_MAX_AGE,
        max_size: int = DEFAULT_CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._dir = Path(cache_dir) if cache_dir is not None else Path.cwd() / DEFAULT_CACHE_DIR
        self._max_age = max_age
        self._max_size = max_size
        self._clock = clock
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

        self._dir.mkdir(parents=True, exist_ok=True)
        self._index: dict[str, CacheEntry] = self._load_index()
        self.cleanup_expired()

    @property
    def cache_dir(self) -> Path:
        return self._dir

    def get(self, key: str) -> bytes | None:
        """Return the cached bytes for ``key``, or None on a miss.

        Expired entries and entries whose blob has disappeared are removed as
        a side effect of the lookup.
        """
        with self._lock:
            entry = self._index.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self._clock(), self._max_age):
                logger.debug("Cache entry %s expired", key)
                self._remove_locked(key)
                self._misses += 1
                return None

        try:
            data = self._blob_path(key).read_bytes()
        except OSError as e:
            logger.warning("Cache blob for %s unreadable (%s), dropping entry", key, e)
            with self._lock:
                self._remove_locked(key)
                self._misses += 1
            return None

        with self._lock:
            self._hits += 1
        return data

    def get_entry(self, key: str) -> CacheEntry | None:
        """Index record for ``key`` without touching the blob or counters."""
        with self._lock:
            entry = self._index.get(key)
        if entry is None or entry.is_expired(self._clock(), self._max_age):
            return None
        return entry

    def set(self, key: str, data: bytes, metadata: dict[str, Any] | None = None) -> None:
        """Store ``data`` under ``key`` then enforce the size ceiling.

        Failures are logged and swallowed; a cache write never aborts a
        conversion.
        """
        try:
            self._blob_path(key).write_bytes(data)
            with self._lock:
                self._index[key] = CacheEntry(
                    key=key,
                    timestamp=self._clock(),
                    size=len(data),
                    metadata=metadata or {},
                )
                self._save_index()
        except (OSError, CacheIOError) as e:
            logger.warning("Failed to set cache entry %s: %s", key, e)
            return
        self.enforce_max_size()

    def remove(self, key: str) -> None:
        """Delete an entry and its blob. Missing entries are ignored."""
        with self._lock:
            self._remove_locked(key)

    def cleanup_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._index.items()
                if entry.is_expired(now, self._max_age)
            ]
            for key in expired:
                self._remove_locked(key)
        if expired:
            logger.info("Removed %d expired cache entries", len(expired))
        return len(expired)

    def enforce_max_size(self) -> int:
        """Evict oldest-first until the total size fits the ceiling.

        Returns the number of evicted entries.
        """
        evicted = 0
        with self._lock:
            total = sum(entry.size for entry in self._index.values())
            if total <= self._max_size:
                return 0
            # sorted() is stable, so equal timestamps keep index order
            candidates = sorted(self._index.values(), key=lambda e: e.timestamp)
            while total > self._max_size and candidates:
                entry = candidates.pop(0)
                total -= entry.size
                self._remove_locked(entry.key)
                evicted += 1
        logger.info("Evicted %d cache entries to stay under %d bytes", evicted, self._max_size)
        return evicted

    def clear(self) -> None:
        """Remove every entry and blob."""
        with self._lock:
            for key in list(self._index):
                self._remove_locked(key)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                total_size=sum(entry.size for entry in self._index.values()),
                item_count=len(self._index),
                max_size=self._max_size,
                max_age=self._max_age,
                cache_dir=str(self._dir),
                hits=self._hits,
                misses=self._misses,
            )

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key: object) -> bool:
        return key in self._index

    # ── Internals (callers hold self._lock) ──

    def _blob_path(self, key: str) -> Path:
        return self._dir / key

    def _remove_locked(self, key: str) -> None:
        try:
            self._blob_path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to delete cache blob %s: %s", key, e)
        if self._index.pop(key, None) is None:
            return
        try:
            self._save_index()
        except CacheIOError as e:
            logger.warning("Failed to remove cache entry %s: %s", key, e)

    def _save_index(self) -> None:
        payload = {
            key: entry.model_dump(exclude={"key"})
            for key, entry in self._index.items()
        }
        try:
            (self._dir / _INDEX_NAME).write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            raise CacheIOError(f"Cannot write cache index: {e}") from e

    def _load_index(self) -> dict[str, CacheEntry]:
        path = self._dir / _INDEX_NAME
        if not path.exists():
            return {}
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Cache index %s unreadable, starting empty: %s", path, e)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Cache index %s is not a mapping, starting empty", path)
            return {}

        index: dict[str, CacheEntry] = {}
        for key, record in raw.items():
            try:
                index[key] = CacheEntry(key=key, **record)
            except (TypeError, ValidationError) as e:
                logger.warning("Skipping malformed cache record %s: %s", key, e)
        return index
