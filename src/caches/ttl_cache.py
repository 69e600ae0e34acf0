"""
QBot - TTL Cache
================

Small key/value store with per-entry expiry.

Used for the Roblox group-roles cache and the /update cooldown. Instances
are created by their owners and injected where needed, so tests can pass a
fake clock and nothing leaks between runs. Expired entries are dropped
lazily on read and in bulk by ``sweep()``.
"""

import time
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from src.core.logger import logger


V = TypeVar("V")


# =============================================================================
# TTL Cache
# =============================================================================

class TTLCache(Generic[V]):
    """
    Mapping with a default time-to-live per entry.

    Args:
        ttl_seconds: Default lifetime of an entry
        max_size: Entry cap; the oldest entries are evicted past it
        clock: Monotonic time source (injectable for tests)
        name: Label used in log output
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ) -> None:
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._clock = clock
        self._name = name
        self._entries: Dict[Hashable, Tuple[float, V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        """Return the live value for ``key`` or None if missing/expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: V, ttl_seconds: Optional[float] = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = (self._clock() + ttl, value)
        if len(self._entries) > self._max_size:
            self.sweep()
        if len(self._entries) > self._max_size:
            # Still full after dropping expired entries: evict soonest-to-expire
            ordered = sorted(self._entries.items(), key=lambda item: item[1][0])
            self._entries = dict(ordered[len(ordered) - self._max_size:])

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def remaining(self, key: Hashable) -> float:
        """Seconds left before ``key`` expires (0 if missing or expired)."""
        entry = self._entries.get(key)
        if entry is None:
            return 0.0
        return max(0.0, entry[0] - self._clock())

    def sweep(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        fresh = {k: v for k, v in self._entries.items() if v[0] > now}
        removed = len(self._entries) - len(fresh)
        self._entries = fresh
        if removed:
            logger.debug("TTL Cache Swept", [
                ("Cache", self._name),
                ("Removed", removed),
                ("Remaining", len(self._entries)),
            ])
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# Cooldown Tracker
# =============================================================================

class CooldownTracker:
    """Per-key cooldown built on TTLCache (e.g. one /update per user per 30s)."""

    def __init__(self, cooldown_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._cache: TTLCache[bool] = TTLCache(cooldown_seconds, max_size=5000, clock=clock, name="cooldown")

    def retry_after(self, key: Hashable) -> float:
        """Seconds until ``key`` may act again (0 when allowed)."""
        return self._cache.remaining(key)

    def hit(self, key: Hashable) -> bool:
        """Record an action. Returns False if ``key`` is still cooling down."""
        if key in self._cache:
            return False
        self._cache.set(key, True)
        return True

    def sweep(self) -> int:
        return self._cache.sweep()


__all__ = [
    "TTLCache",
    "CooldownTracker",
]
