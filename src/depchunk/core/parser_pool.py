"""
Parser pool.

Keeps released front-end adapters for reuse, one stack per pool key. The key
is the front-end kind, refined by file extension for the generic tree-sitter
backend since its adapters are bound to one grammar.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from depchunk.core.language_registry import TREESITTER_FRONT_END
from depchunk.core.parsers import ParserAdapter, create_parser

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[str, Optional[str]], ParserAdapter]


@dataclass
class PoolStats:
    """Counters of a ParserPool."""

    created: int
    reused: int
    released: int
    hit_rate: float
    pool_sizes: dict[str, int] = field(default_factory=dict)


def pool_key(kind: str, file_path: Optional[str] = None) -> str:
    """Return the pool key for a front-end kind and file."""
    if kind == TREESITTER_FRONT_END and file_path:
        extension = Path(file_path).suffix.lstrip(".").lower()
        return f"{kind}:{extension or 'unknown'}"
    return kind


class ParserPool:
    """Reuse pool of parser adapters."""

    def __init__(self, max_size: int = 5, factory: AdapterFactory = create_parser):
        """
        Args:
            max_size: Maximum adapters kept per key
            factory: Builds a new adapter for (kind, file_path)
        """
        self._max_size = max_size
        self._factory = factory
        self._pools: dict[str, list[ParserAdapter]] = {}
        self._created = 0
        self._reused = 0
        self._released = 0

    def get_adapter(self, kind: str, file_path: Optional[str] = None) -> ParserAdapter:
        """Pop a pooled adapter for the key, or build a new one."""
        key = pool_key(kind, file_path)
        pool = self._pools.get(key)
        if pool:
            self._reused += 1
            return pool.pop()

        self._created += 1
        logger.debug(f"Creating parser adapter for {key}")
        return self._factory(kind, file_path)

    def release_adapter(
        self, kind: str, adapter: ParserAdapter, file_path: Optional[str] = None
    ) -> None:
        """Return an adapter to its pool. Dropped when the pool is full."""
        key = pool_key(kind, file_path)
        pool = self._pools.setdefault(key, [])
        if len(pool) < self._max_size:
            pool.append(adapter)
        self._released += 1

    def clear(self) -> None:
        """Empty every pool and reset the counters."""
        self._pools.clear()
        self._created = 0
        self._reused = 0
        self._released = 0

    def pool_size(self, kind: str, file_path: Optional[str] = None) -> int:
        return len(self._pools.get(pool_key(kind, file_path), []))

    def get_stats(self) -> PoolStats:
        acquisitions = self._created + self._reused
        return PoolStats(
            created=self._created,
            reused=self._reused,
            released=self._released,
            hit_rate=self._reused / acquisitions if acquisitions else 0.0,
            pool_sizes={key: len(pool) for key, pool in self._pools.items()},
        )
