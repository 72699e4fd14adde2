"""In-memory cache of resolved stream URLs with sliding expiry."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    url: str
    last_access: float


def movie_cache_key(catalog_id: str) -> str:
    return f"movie_{catalog_id}"


def series_cache_key(catalog_id: str, season: str, episode: str) -> str:
    return f"series_{catalog_id}_S{season}E{episode}"


class DeliveryCache:
    """Sliding-TTL cache keyed by logical request key.

    Expiry is evaluated lazily on ``get``; a hit resets the entry's clock, so
    a URL that keeps being requested never expires.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: str, ttl_seconds: float) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = self._clock()
            if now - entry.last_access < ttl_seconds:
                entry.last_access = now
                logger.debug("Cache hit for %s", key)
                return entry.url
            del self._entries[key]
            logger.debug("Cache entry %s expired", key)
            return None

    def set(self, key: str, url: str) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(url=url, last_access=self._clock())
        logger.debug("Cached %s", key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
