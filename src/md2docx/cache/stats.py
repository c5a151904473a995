"""Cache entry and statistics models."""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """Index record for one cached blob. The timestamp is fixed at creation."""

    key: str
    timestamp: float = Field(default_factory=time.time)
    size: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    def is_expired(self, now: float, max_age: float) -> bool:
        return now - self.timestamp > max_age


class CacheStats(BaseModel):
    """Aggregate cache statistics."""

    total_size: int = 0
    item_count: int = 0
    max_size: int = 0
    max_age: float = 0.0
    cache_dir: str = ""
    hits: int = 0
    misses: int = 0

    @property
    def size_mb(self) -> float:
        return self.total_size / (1024 * 1024)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
