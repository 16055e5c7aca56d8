"""
In-memory TTL cache for quotes and access tokens.
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from reading_room.core.logging import get_logger

logger = get_logger("data.cache")


class CacheEntry:
    """Cache entry with expiration."""

    def __init__(self, value: Any, created_at: float, expires_at: Optional[float] = None):
        self.value = value
        self.created_at = created_at
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        """Check if entry is expired."""
        if self.expires_at is None:
            return False
        return now >= self.expires_at


class DataCache:
    """
    Bounded in-memory cache with per-entry TTL and LRU eviction.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        max_items: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_items = max_items
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Get a live value, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store a value; None TTL never expires."""
        now = self._clock()
        expires_at = now + ttl_seconds if ttl_seconds is not None else None

        with self._lock:
            if key in self._entries:
                del self._entries[key]
            while self._entries and len(self._entries) >= self.max_items:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted}")
            self._entries[key] = CacheEntry(value, now, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_expired(self) -> int:
        """Clear expired entries. Returns count of cleared entries."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_items": self.max_items,
                "hits": self._hits,
                "misses": self._misses,
            }

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        # An empty cache is still a cache
        return True
