"""TTL + LRU bounded in-memory cache for registry responses."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional


class TTLCache:
    """Size-bounded cache whose entries expire a fixed time after insertion.

    Reads refresh recency but never extend the lifetime of an entry.
    When the cache grows past ``max_size`` the least recently used entry goes first.
    """

    def __init__(
        self,
        max_size: int = 500,
        ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            inserted_at, value = entry
            if self._clock() - inserted_at >= self._ttl:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, (ts, _) in self._entries.items() if now - ts >= self._ttl]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._entries)
