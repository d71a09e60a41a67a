"""
arena.engine.cache — In-memory TTL cache for read-mostly lists
===============================================================

The public navigation needs the list of games on nearly every page, and
that list changes only when an admin edits a game.  :class:`TTLCache`
holds one loaded value for ``ttl_seconds``; admin game mutations call
:meth:`TTLCache.invalidate` so edits show up immediately in this process.

Correctness never depends on this cache: roster mutations always read and
write the database directly.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Thread-safe single-value cache with a time-to-live.

    Usage::

        games_cache = TTLCache(ttl_seconds=300)
        games = games_cache.get(lambda: admin_service.list_games_for_nav(engine))
        ...
        games_cache.invalidate()   # after create/update/delete
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._value: T | None = None
        self._loaded_at: float | None = None

    @property
    def is_fresh(self) -> bool:
        with self._lock:
            return self._fresh_locked()

    def _fresh_locked(self) -> bool:
        if self._loaded_at is None:
            return False
        return (self._clock() - self._loaded_at) < self.ttl_seconds

    def get(self, loader: Callable[[], T]) -> T:
        """Return the cached value, calling *loader* if it is missing or stale.

        A loader exception propagates and leaves the cache empty.
        """
        with self._lock:
            if self._fresh_locked():
                return self._value  # type: ignore[return-value]
            value = loader()
            self._value = value
            self._loaded_at = self._clock()
            logger.debug("TTLCache reloaded (ttl=%ss)", self.ttl_seconds)
            return value

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
            self._loaded_at = None
