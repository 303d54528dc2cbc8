"""Thread-safe freshness cache for rendered current-weather replies."""

from __future__ import annotations

import datetime as dt
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache")

CACHE_TTL = dt.timedelta(minutes=30)

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Cached value with the monotonic time it was stored."""
    value: V
    stored_at: float


def normalize_key(key: str) -> str:
    """Case-insensitive key for a location name."""
    return key.strip().casefold()


class FreshnessCache(Generic[V]):
    """
    Location-keyed cache with a fixed TTL and lazy expiry.

    Expired entries are reported as absent and stay in the table until the
    same key is written again. The key space (city names) is small, so the
    table is not bounded.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_seconds = CACHE_TTL.total_seconds()
        self._clock = clock
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[V]:
        """Return the fresh value for `key`, or None if missing or expired."""
        norm = normalize_key(key)
        with self._lock:
            entry = self._entries.get(norm)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl_seconds:
            logger.debug(f"Cache entry for '{norm}' expired")
            return None
        return entry.value

    def set(self, key: str, value: V) -> None:
        """Insert or overwrite `key`, restarting its freshness window."""
        norm = normalize_key(key)
        entry = CacheEntry(value=value, stored_at=self._clock())
        with self._lock:
            self._entries[norm] = entry

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop every entry (dev/testing)."""
        with self._lock:
            self._entries.clear()
