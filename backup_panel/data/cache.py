"""In-process result cache with a short time-to-live.

Bounds backend load: each key is recomputed at most once per expiry window,
and concurrent readers of an expired key wait for a single computation
instead of each hitting the backend.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from .models import CacheEntry

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 4

STATUSES_CACHE_KEY = "backup-statuses"


def files_cache_key(disk: str) -> str:
    """Cache key for one disk's file listing."""
    return f"backups-{disk}"


class ResultCache:
    """Keyed memoization with expiry and per-key single-flight.

    Args:
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CacheEntry[Any]] = {}
        # Bumped on invalidate so an in-flight computation cannot store a stale result
        self._generations: Dict[str, int] = {}
        self._entries_lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    def get_or_compute(self, key: str, ttl_seconds: float, compute_fn: Callable[[], T]) -> T:
        """Return the cached value for ``key`` or compute and store it.

        Exceptions from ``compute_fn`` propagate and nothing is cached.
        """
        entry = self._get_fresh(key)
        if entry is not None:
            return entry.value

        with self._lock_for(key):
            # Another caller may have filled the entry while we waited
            entry = self._get_fresh(key)
            if entry is not None:
                return entry.value

            with self._entries_lock:
                generation = self._generations.get(key, 0)

            value = compute_fn()

            with self._entries_lock:
                if self._generations.get(key, 0) == generation:
                    self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)
            return value

    def get(self, key: str) -> Optional[Any]:
        """Return the unexpired value for ``key`` or None."""
        entry = self._get_fresh(key)
        return entry.value if entry is not None else None

    def invalidate(self, key: str) -> None:
        """Drop ``key`` immediately."""
        with self._entries_lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def clear(self) -> None:
        """Drop every entry."""
        with self._entries_lock:
            for key in set(self._entries) | set(self._key_locks):
                self._generations[key] = self._generations.get(key, 0) + 1
            self._entries.clear()

    def _get_fresh(self, key: str) -> Optional[CacheEntry[Any]]:
        with self._entries_lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_fresh(self._clock()):
                del self._entries[key]
                return None
            return entry

    def _lock_for(self, key: str) -> threading.Lock:
        with self._entries_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock
