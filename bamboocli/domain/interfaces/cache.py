"""Interface for caching mechanisms.

Defines the contract for storing, retrieving and invalidating cached API
responses with a per-entry TTL.
"""

import abc
from typing import Any, Dict, Optional

from ..models.common import CacheKey


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations.

    Methods are synchronous on purpose: an in-memory lookup-then-mutate must
    complete without yielding to the event loop.
    """

    @abc.abstractmethod
    def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves an item from the cache.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached item if found and not expired, otherwise None.
        """
        pass

    @abc.abstractmethod
    def put(self, key: CacheKey, value: Any, ttl_seconds: float) -> None:
        """Stores an item under `key` for `ttl_seconds`.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
            ttl_seconds: Time-to-live in seconds.
        """
        pass

    @abc.abstractmethod
    def invalidate(self, key: CacheKey) -> None:
        """Removes an item from the cache if present."""
        pass

    @abc.abstractmethod
    def clear(self) -> None:
        """Removes all items from the cache."""
        pass

    def stats(self) -> Dict[str, Any]:
        """Optional monitoring hook: live entry count and keys."""
        return {"size": 0, "entries": []}
