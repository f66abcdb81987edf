"""In-process enumeration cache for derived listings such as the universe."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class MemoryEnumerationCache:
    """Thread-safe read-through cache keyed by string.

    ``invalidate`` is idempotent: invalidating a missing key is a no-op.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Any] = {}
        self._generations: dict[str, int] = {}

    def fetch(self, cache_key: str, producer: Callable[[], Any]) -> Any:
        """Return the cached value, computing it with *producer* on a miss.

        The producer runs outside the lock.  If the key is invalidated
        while it runs, the computed value is returned but not stored.
        """
        with self._lock:
            if cache_key in self._entries:
                return self._entries[cache_key]
            generation = self._generations.get(cache_key, 0)
        value = producer()
        with self._lock:
            if self._generations.get(cache_key, 0) == generation:
                self._entries[cache_key] = value
        return value

    def get(self, cache_key: str) -> Any | None:
        with self._lock:
            return self._entries.get(cache_key)

    def __contains__(self, cache_key: object) -> bool:
        with self._lock:
            return cache_key in self._entries

    def invalidate(self, cache_key: str) -> None:
        with self._lock:
            self._generations[cache_key] = self._generations.get(cache_key, 0) + 1
            removed = self._entries.pop(cache_key, None) is not None
        if removed:
            logger.debug("Invalidated cache key %r.", cache_key)
