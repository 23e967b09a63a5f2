"""Concrete implementation of the in-memory response cache.

Entries carry their own TTL (chosen per resource class by the caller) and
are evicted lazily: a lookup that finds an expired entry removes it and
reports a miss. There is no background sweep and no size bound.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from bamboocli.domain.interfaces.cache import CacheService
from bamboocli.domain.models.common import CacheKey, RequestParams

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Internal representation of a cache entry with expiry."""
    key: CacheKey
    value: Any
    inserted_at: float
    ttl_seconds: float

    @property
    def expires_at(self) -> float:
        return self.inserted_at + self.ttl_seconds

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


def build_cache_key(method: str, path: str, params: Optional[RequestParams] = None) -> CacheKey:
    """Deterministic signature of method+path+params.

    Parameters are serialized with sorted keys so their order never changes
    the key; values that are not JSON-native fall back to str().
    """
    canonical = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)
    return CacheKey(f"{method.upper()}:{path}:{canonical}")


class InMemoryCacheStore(CacheService):
    """Key/value store with per-entry expiry and lazy eviction."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initializes the cache.

        Args:
            clock: Source of the current time in seconds (injectable for tests).
        """
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._clock = clock
        logger.info("InMemoryCacheStore initialized.")

    def get(self, key: CacheKey) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache miss for key: {key}")
            return None
        if not entry.is_live(self._clock()):
            del self._entries[key]
            logger.debug(f"Cache entry expired for key: {key}. Evicted.")
            return None
        logger.debug(f"Cache hit for key: {key}")
        return entry.value

    def put(self, key: CacheKey, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            # A zero TTL means "do not cache"; drop any stale copy instead.
            self.invalidate(key)
            return
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._clock(), ttl_seconds=ttl_seconds)
        logger.debug(f"Stored item in cache: key={key}, ttl={ttl_seconds}s")

    def invalidate(self, key: CacheKey) -> None:
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Invalidated cache entry: key={key}")

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cleared response cache ({count} entries).")

    def stats(self) -> Dict[str, Any]:
        """Live (unexpired) entries; does not evict."""
        now = self._clock()
        live = [key for key, entry in self._entries.items() if entry.is_live(now)]
        return {"size": len(live), "entries": live}

    def __len__(self) -> int:
        return len(self._entries)
