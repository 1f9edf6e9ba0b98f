"""In-memory cache with freshness windows.

Entries are never evicted individually: freshness is checked at read time and
callers decide whether an expired value is still good enough (serve-stale on
errors). The key space is bounded by metric names times the parameter
combinations actually requested.

Example:
    cache = TimeBoxedCache(ttl_seconds=180)
    cache.set("category-distribution", shares)

    if cache.is_valid("category-distribution"):
        return cache.get("category-distribution")
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry[T]:
    """A cached value and when it was stored."""

    key: str
    value: T
    stored_at: float


class TimeBoxedCache[T]:
    """Key/value store whose entries are fresh for a bounded time."""

    def __init__(
        self,
        ttl_seconds: float = 180.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def is_valid(self, key: str, *, ttl_seconds: float | None = None) -> bool:
        """Whether an entry exists and is younger than the freshness window."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        ttl = self._ttl_seconds if ttl_seconds is None else ttl_seconds
        return self._clock() - entry.stored_at < ttl

    def get(self, key: str) -> T | None:
        """Stored value regardless of freshness."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def entry(self, key: str) -> CacheEntry[T] | None:
        return self._entries.get(key)

    def set(self, key: str, value: T) -> None:
        """Store a value, resetting its timestamp."""
        now = self._clock()
        previous = self._entries.get(key)
        if previous is not None and now < previous.stored_at:
            now = previous.stored_at
        self._entries[key] = CacheEntry(key=key, value=value, stored_at=now)

    def age(self, key: str) -> float | None:
        """Seconds since the entry was stored."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return max(0.0, self._clock() - entry.stored_at)

    def clear(self) -> None:
        """Drop every entry."""
        if self._entries:
            logger.debug(f"Clearing {len(self._entries)} cached entries")
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
