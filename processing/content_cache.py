# processing/content_cache.py
"""Time-bound, capacity-bounded cache of validated activity content."""

from __future__ import annotations

import copy
import hashlib
import json
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from config import settings

from models import ActivityContentModel, ActivityType

logger = structlog.get_logger(__name__)


def _fingerprint(source_text: str) -> str:
    return hashlib.sha256(source_text.encode("utf-8")).hexdigest()


def make_cache_key(
    activity_type: ActivityType | str, age_years: int, source_text: str
) -> str:
    """Build the cache key for one (activity type, age, source text) triple."""
    type_value = ActivityType(activity_type).value
    return f"{type_value}:{age_years}:{_fingerprint(source_text)}"


@dataclass
class CacheEntry:
    key: str
    content: ActivityContentModel
    inserted_at: float


class ContentCache:
    """TTL cache with oldest-first bulk eviction.

    Entries older than ``ttl_seconds`` are treated as absent and removed when
    touched. When ``max_entries`` is exceeded, expired entries are purged
    first and then the oldest ``eviction_ratio`` share of the remainder.
    Content crosses the cache boundary as deep copies in both directions.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        max_entries: int | None = None,
        eviction_ratio: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.CONTENT_CACHE_TTL_SECONDS
        )
        self.max_entries = (
            max_entries if max_entries is not None else settings.CONTENT_CACHE_MAX_ENTRIES
        )
        self.eviction_ratio = (
            eviction_ratio
            if eviction_ratio is not None
            else settings.CONTENT_CACHE_EVICTION_RATIO
        )
        self._clock = clock
        self._data: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.inserted_at > self.ttl_seconds

    def get(self, key: str) -> ActivityContentModel | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                del self._data[key]
                logger.debug("Cache entry expired.", key=key)
                return None
            return entry.content.model_copy(deep=True)

    def set(self, key: str, content: ActivityContentModel) -> None:
        with self._lock:
            now = self._clock()
            self._data[key] = CacheEntry(
                key=key, content=content.model_copy(deep=True), inserted_at=now
            )
            if len(self._data) > self.max_entries:
                self._evict(now)

    def _evict(self, now: float) -> None:
        expired = [k for k, e in self._data.items() if self._is_expired(e, now)]
        for key in expired:
            del self._data[key]
        evicted = 0
        if len(self._data) > self.max_entries:
            count = max(1, math.floor(len(self._data) * self.eviction_ratio))
            oldest = sorted(self._data.values(), key=lambda e: e.inserted_at)[:count]
            for entry in oldest:
                del self._data[entry.key]
            evicted = len(oldest)
        logger.info(
            "Content cache over capacity; evicted entries.",
            expired=len(expired),
            evicted=evicted,
            remaining=len(self._data),
        )

    def invalidate(self, source_text: str | None = None) -> int:
        """Remove entries for ``source_text``, or everything when it is None.

        Returns the number of removed entries.
        """
        with self._lock:
            if source_text is None:
                removed = len(self._data)
                self._data.clear()
                return removed

            removed = 0
            for activity_type in ActivityType:
                for age in range(
                    settings.CACHE_INVALIDATION_MIN_AGE,
                    settings.CACHE_INVALIDATION_MAX_AGE + 1,
                ):
                    key = make_cache_key(activity_type, age, source_text)
                    if self._data.pop(key, None) is not None:
                        removed += 1
            return removed

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            now = self._clock()
            expired = sum(1 for e in self._data.values() if self._is_expired(e, now))
            approx_size = sum(
                len(e.key.encode("utf-8"))
                + len(
                    json.dumps(e.content.to_payload(), ensure_ascii=False).encode("utf-8")
                )
                for e in self._data.values()
            )
            return {
                "totalEntries": len(self._data),
                "expiredEntries": expired,
                "approxSizeBytes": approx_size,
            }
