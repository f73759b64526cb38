"""
In-memory result caching for aggregated sources.

Entries expire after a fixed TTL. When the cache is full, the entry that was
inserted first is evicted (FIFO). Reads do not refresh an entry's position.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultCache(Generic[T]):
    """TTL cache with a capacity cap and insertion-order eviction.

    Construct one explicitly and hand it to the components that need it;
    there is no process-wide instance.
    """

    def __init__(
        self,
        ttl_seconds: float = 15 * 60,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Seconds an entry stays valid after it was stored
            max_entries: Number of entries kept before the oldest is evicted
            clock: Monotonic time source, injectable for tests
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[T, float]]" = OrderedDict()

    @staticmethod
    def normalize_key(key: str) -> str:
        return " ".join(key.lower().split())

    def get(self, key: str) -> Optional[T]:
        """Return the cached value, or None if missing or expired."""
        normalized = self.normalize_key(key)
        entry = self._entries.get(normalized)
        if entry is None:
            return None

        value, stored_at = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[normalized]
            logger.debug(f"Cache entry expired: '{normalized[:40]}'")
            return None

        logger.debug(f"Cache hit for: '{normalized[:40]}'")
        return value

    def set(self, key: str, value: T) -> None:
        """Store a value, evicting the oldest-inserted entry when full."""
        normalized = self.normalize_key(key)
        # Updating an existing key keeps its original insertion position
        if normalized not in self._entries and len(self._entries) >= self.max_entries:
            oldest_key, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted: '{oldest_key[:40]}'")

        self._entries[normalized] = (value, self._clock())
        logger.debug(f"Cached: '{normalized[:40]}'")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics for monitoring."""
        return {
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
        }
