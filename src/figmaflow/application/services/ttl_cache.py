"""In-memory key/value cache with per-entry expiry and LRU eviction."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_MAX_SIZE = 100
DEFAULT_TTL_SECONDS = 300.0


@dataclass
class _Entry(Generic[V]):
    value: V
    stored_at: float
    ttl: float
    access_count: int = 0


@dataclass(frozen=True)
class CacheStats:
    size: int
    max_size: int
    hits: int
    misses: int
    hit_rate: float
    miss_rate: float


class TTLCache(Generic[K, V]):
    """
    Key/value store whose entries expire ``ttl`` seconds after being stored.

    Expiry is checked lazily on read (``now - stored_at > ttl``) and the
    expired entry is evicted by that read. When the cache is full, inserting
    a new key evicts the least recently used entry. Single-threaded use only:
    the pipeline runs on one event loop, so no locking is done.

    Args:
        max_size: Maximum number of live entries
        default_ttl: TTL in seconds when ``set`` is called without one
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be > 0, got {default_ttl}")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: OrderedDict[K, _Entry[V]] = OrderedDict()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: _Entry[V], now: float) -> bool:
        return now - entry.stored_at > entry.ttl

    def get(self, key: K, default: V | None = None) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return default

        if self._expired(entry, self._clock()):
            del self._entries[key]
            self._misses += 1
            return default

        entry.access_count += 1
        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    def has(self, key: K) -> bool:
        """True when ``key`` holds a live entry; does not touch hit/miss counters."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._expired(entry, self._clock()):
            del self._entries[key]
            return False
        return True

    def set(self, key: K, value: V, ttl: float | None = None) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted least recently used entry {evicted!r}")
        self._entries[key] = _Entry(
            value=value,
            stored_at=self._clock(),
            ttl=ttl if ttl is not None else self.default_ttl,
        )

    def delete(self, key: K) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate(self, predicate: Callable[[K], bool]) -> int:
        """Remove every entry whose key matches ``predicate``; returns the count removed."""
        doomed = [key for key in self._entries if predicate(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def cleanup(self) -> int:
        """Drop all expired entries; returns the count removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Cache cleanup removed {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    @property
    def hits(self) -> int:
        return self._hits

    def stats(self) -> CacheStats:
        total = self._hits + self._misses
        return CacheStats(
            size=len(self._entries),
            max_size=self.max_size,
            hits=self._hits,
            misses=self._misses,
            hit_rate=self._hits / total if total else 0.0,
            miss_rate=self._misses / total if total else 0.0,
        )
