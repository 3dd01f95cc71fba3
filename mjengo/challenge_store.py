"""
Transient key-value store for verification challenges and rate-limit windows.

The interface is small enough to back with Redis in multi-instance
deployments (GET/SET EX/DEL/INCR/ZADD). The default in-memory store evicts
lazily on lookup; sweep() only reclaims memory, correctness never depends
on it running.
"""

import copy
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ChallengeStore(ABC):
    """Keyed transient state with per-key TTL."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True only for the caller that actually removed it."""
        pass

    @abstractmethod
    def incr(self, key: str, field: str) -> Optional[int]:
        """Atomically increment an integer field of a stored dict.

        Returns the new value, or None if the key is missing or expired.
        """
        pass

    @abstractmethod
    def hit(self, key: str, window_seconds: float, limit: int) -> bool:
        """Record one event in a sliding window if fewer than `limit` are already in it.

        Returns False (and records nothing) when the window is full.
        """
        pass

    def sweep(self) -> int:
        """Drop expired entries. Returns the number removed."""
        return 0


class InMemoryChallengeStore(ChallengeStore):
    """Process-local store. All mutations happen under a single lock."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._values: dict[str, tuple[Any, float]] = {}  # key -> (value, expires_at)
        self._windows: dict[str, list[float]] = {}

    def _live(self, key: str, now: float):
        entry = self._values.get(key)
        if entry is None:
            return None
        if entry[1] <= now:
            del self._values[key]
            return None
        return entry

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._live(key, self._clock())
            # Copy so callers can't mutate shared state outside the lock
            return copy.deepcopy(entry[0]) if entry else None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._values[key] = (copy.deepcopy(value), self._clock() + ttl_seconds)

    def delete(self, key: str) -> bool:
        with self._lock:
            if self._live(key, self._clock()) is None:
                return False
            del self._values[key]
            return True

    def incr(self, key: str, field: str) -> Optional[int]:
        with self._lock:
            entry = self._live(key, self._clock())
            if entry is None:
                return None
            value = entry[0]
            value[field] = int(value.get(field, 0)) + 1
            return value[field]

    def hit(self, key: str, window_seconds: float, limit: int) -> bool:
        with self._lock:
            now = self._clock()
            cutoff = now - window_seconds
            recent = [ts for ts in self._windows.get(key, []) if ts > cutoff]
            if len(recent) >= limit:
                self._windows[key] = recent
                return False
            recent.append(now)
            self._windows[key] = recent
            return True

    def sweep(self, window_seconds: float = 3600) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, exp) in self._values.items() if exp <= now]
            for key in expired:
                del self._values[key]

            cutoff = now - window_seconds
            stale = [k for k, hits in self._windows.items() if not any(ts > cutoff for ts in hits)]
            for key in stale:
                del self._windows[key]

        cleaned = len(expired) + len(stale)
        if cleaned:
            logger.info("Swept %d expired challenge/rate-limit entries", cleaned)
        return cleaned
