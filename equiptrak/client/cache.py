"""Keyed store for fetched collections.

Each key is ``(resource, *params)``. Every fetch for a key takes a sequence
number from :meth:`QueryCache.begin`; its outcome is applied only while that
number is still the latest issued for the key, so a slow response can never
overwrite the result of a request issued after it.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Hashable, Optional

CacheKey = tuple[Hashable, ...]


@dataclass
class CacheEntry:
    data: Any = None
    error: Optional[Exception] = None
    status: str = "loading"
    is_fetching: bool = False
    is_stale: bool = False
    updated_at: Optional[float] = None


@dataclass
class QueryCache:
    _entries: dict[CacheKey, CacheEntry] = field(default_factory=dict)
    _issued: dict[CacheKey, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._entries)

    def read(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def begin(self, key: CacheKey) -> int:
        seq = self._issued.get(key, 0) + 1
        self._issued[key] = seq
        entry = self._entries.setdefault(key, CacheEntry())
        entry.is_fetching = True
        if entry.data is None and entry.error is None:
            entry.status = "loading"
        return seq

    def _is_current(self, key: CacheKey, seq: int) -> bool:
        return key in self._entries and self._issued.get(key) == seq

    def resolve(self, key: CacheKey, seq: int, data: Any) -> bool:
        if not self._is_current(key, seq):
            return False
        entry = self._entries[key]
        entry.data = data
        entry.error = None
        entry.status = "success"
        entry.is_fetching = False
        entry.is_stale = False
        entry.updated_at = time.time()
        return True

    def reject(self, key: CacheKey, seq: int, error: Exception) -> bool:
        if not self._is_current(key, seq):
            return False
        entry = self._entries[key]
        entry.error = error
        entry.status = "error"
        entry.is_fetching = False
        entry.updated_at = time.time()
        return True

    def invalidate(self, prefix: CacheKey = ()) -> int:
        """Marks matching entries stale and drops their in-flight results."""
        count = 0
        for key, entry in self._entries.items():
            if key[: len(prefix)] != tuple(prefix):
                continue
            entry.is_stale = True
            entry.is_fetching = False
            self._issued[key] = self._issued.get(key, 0) + 1
            count += 1
        return count

    def clear(self) -> None:
        self._entries.clear()
        # sequence numbers stay monotonic across clears
        for key in self._issued:
            self._issued[key] += 1
