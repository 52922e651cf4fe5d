"""Bounded memoization for search results.

Entries are kept in insertion order. When the cache grows past its
capacity the oldest ``evict_fraction`` of entries is dropped at once.
Eviction only costs recomputation; it never changes results.
"""

from collections import OrderedDict
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ResultCache(Generic[T]):
    def __init__(self, capacity: int = 100, evict_fraction: float = 0.3) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got: {capacity}")
        if not 0.0 < evict_fraction <= 1.0:
            raise ValueError(f"evict_fraction must be in (0, 1], got: {evict_fraction}")
        self.capacity = capacity
        self.evict_fraction = evict_fraction
        self._entries: OrderedDict[str, T] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> T | None:
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        return None

    def put(self, key: str, value: T) -> None:
        self._entries[key] = value
        if len(self._entries) > self.capacity:
            self._evict()

    def _evict(self) -> None:
        count = max(1, int(len(self._entries) * self.evict_fraction))
        for _ in range(count):
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "capacity": self.capacity,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / lookups * 100) if lookups else 0,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
