"""
Parsed-tree cache.

Entries are keyed by file path and only served while the caller's content
hash matches and the entry is younger than the TTL. Eviction at capacity
removes the entry with the oldest insertion timestamp; lookups do not refresh
timestamps, so this is not an LRU.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    tree: Any
    content_hash: str
    timestamp: float


@dataclass
class CacheStats:
    """Counters of an ASTCache."""

    hits: int
    misses: int
    evictions: int
    size: int
    max_size: int
    hit_rate: float


class ASTCache:
    """Content-hash gated cache of parsed trees."""

    def __init__(
        self,
        max_size: int = 1000,
        ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_size: Maximum number of cached trees
            ttl: Seconds an entry stays valid after insertion
            clock: Time source, replaceable in tests
        """
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, file_path: str, content_hash: str) -> Optional[Any]:
        """Return the cached tree, or None on a miss. Stale entries are dropped."""
        entry = self._entries.get(file_path)
        if entry is None:
            self._misses += 1
            return None

        expired = self._clock() - entry.timestamp > self._ttl
        if entry.content_hash != content_hash or expired:
            del self._entries[file_path]
            self._misses += 1
            return None

        self._hits += 1
        return entry.tree

    def set(self, file_path: str, content_hash: str, tree: Any) -> None:
        if file_path not in self._entries and len(self._entries) >= self._max_size:
            self._evict_oldest()
        self._entries[file_path] = CacheEntry(
            tree=tree, content_hash=content_hash, timestamp=self._clock()
        )

    def _evict_oldest(self) -> None:
        if not self._entries:
            return
        oldest = min(self._entries, key=lambda path: self._entries[path].timestamp)
        del self._entries[oldest]
        self._evictions += 1
        logger.debug(f"Evicted parsed tree for {oldest}")

    def invalidate(self, file_path: str) -> None:
        self._entries.pop(file_path, None)

    def clear(self) -> None:
        """Drop all entries and reset the counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, file_path: str) -> bool:
        return file_path in self._entries

    def get_stats(self) -> CacheStats:
        lookups = self._hits + self._misses
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            size=len(self._entries),
            max_size=self._max_size,
            hit_rate=self._hits / lookups if lookups else 0.0,
        )
