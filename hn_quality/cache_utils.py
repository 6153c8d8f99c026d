from __future__ import annotations

import time
from collections.abc import Callable
from typing import Generic, NamedTuple, Optional, TypeVar

T = TypeVar("T")


class CacheEntry(NamedTuple, Generic[T]):
    value: T
    stored_at: float


class TimedCache(Generic[T]):
    """In-process key/value cache with a fixed time-to-live.

    Expiry is lazy: stale entries stay in the map until overwritten or
    cleared, they are simply not returned by get(). There is no size bound,
    so a long-lived process accumulates one entry per distinct key.
    """

    def __init__(
        self, ttl: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = float(ttl)
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at < self.ttl:
            return entry.value
        return None

    def put(self, key: str, value: T) -> None:
        self._entries[key] = CacheEntry(value, self._clock())

    def clear(self) -> int:
        """Drop every entry and return how many were held."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None
