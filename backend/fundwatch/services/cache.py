"""In-memory TTL cache for slow-changing upstream resources."""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from fundwatch.config import DIRECTORY_CACHE_TTL, TOKEN_CACHE_TTL


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    expires_at: float


class TTLCache:
    """Thread-safe in-memory cache with per-entry expiry.

    Expired entries are evicted on read. There is no capacity bound, so an
    instance is meant for a handful of well-known keys, not arbitrary data.
    """

    def __init__(self, default_ttl: float, clock: Callable[[], float] = time.time):
        self._store: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def get_entry(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._store[key]
                return None
            return entry

    def set(self, key: str, value: Any, ttl: float | None = None) -> CacheEntry:
        ttl = ttl if ttl is not None else self._default_ttl
        now = self._clock()
        entry = CacheEntry(value=value, stored_at=now, expires_at=now + ttl)
        with self._lock:
            self._store[key] = entry
        return entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


# Global cache instances, one per TTL tier
directory_cache = TTLCache(default_ttl=DIRECTORY_CACHE_TTL)
token_cache = TTLCache(default_ttl=TOKEN_CACHE_TTL)
