"""
TTL memoization cache with a background sweeper.

Keys are plain strings. Entries expire at an absolute time; an expired entry
is removed either when someone reads it or when the sweeper passes by.
The sweeper thread belongs to the cache and must be stopped with close().
"""

import inspect
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from loguru import logger
from pydantic_core import to_json

from catalog_engine.shared.config import (
    CACHE_DEFAULT_TTL_SECONDS,
    CACHE_SWEEP_INTERVAL_SECONDS,
)
from catalog_engine.shared.schemas_pydantic import CacheStats

V = TypeVar("V")

_MISSING = object()  # lets None be a cacheable value
_ENTRY_OVERHEAD_BYTES = 24  # rough per-entry bookkeeping (timestamps, dict slot)


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    expires_at: float
    created_at: float


class TTLCache:
    """Thread-safe key/value store with per-entry time-to-live."""

    def __init__(
        self,
        default_ttl: float = CACHE_DEFAULT_TTL_SECONDS,
        sweep_interval: float = CACHE_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")

        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()
        self._stats = CacheStats()

        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if start_sweeper:
            self.start()

    # ---------------- Lifecycle ----------------

    def start(self) -> None:
        """Start the background sweeper (no-op if it is already running)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="ttl-cache-sweeper", daemon=True
        )
        self._sweeper.start()

    def close(self) -> None:
        """Stop the sweeper and drop every entry."""
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=self.sweep_interval + 1)
            self._sweeper = None
        self.clear()
        logger.debug("[TTLCache.close] Sweeper stopped and cache cleared")

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def __enter__(self) -> "TTLCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _sweep_loop(self) -> None:
        # Event.wait returns True once close() is called
        while not self._stop.wait(self.sweep_interval):
            removed = self.sweep()
            if removed:
                logger.debug("[TTLCache._sweep_loop] Removed {} expired entries", removed)

    # ---------------- Core API ----------------

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        entry = CacheEntry(
            value=value,
            expires_at=now + (ttl if ttl is not None else self.default_ttl),
            created_at=now,
        )
        with self._lock:
            self._entries[key] = entry
            self._stats.sets += 1
            self._stats.size = len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING else value

    def has(self, key: str) -> bool:
        """Liveness check that does not touch hit/miss counters."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._clock() > entry.expires_at:
                self._evict(key)
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._entries:
                return False
            self._evict(key)
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stats.size = 0

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def get_or_compute(
        self,
        key: str,
        factory: Callable[[], V],
        ttl: Optional[float] = None,
    ) -> V:
        """Return the live cached value, or build it with factory() and cache it."""
        value = self._lookup(key)
        if value is not _MISSING:
            return value

        value = factory()  # runs outside the lock; a racing caller may compute too
        self.set(key, value, ttl)
        return value

    async def get_or_compute_async(
        self,
        key: str,
        factory: Callable[[], Union[V, Awaitable[V]]],
        ttl: Optional[float] = None,
    ) -> V:
        """Same as get_or_compute, awaiting factory() when it returns an awaitable."""
        value = self._lookup(key)
        if value is not _MISSING:
            return value

        value = factory()
        if inspect.isawaitable(value):
            value = await value
        self.set(key, value, ttl)
        return value

    def sweep(self) -> int:
        """Remove every expired entry now. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for key in expired:
                self._evict(key)
        return len(expired)

    # ---------------- Observability ----------------

    def stats(self) -> CacheStats:
        with self._lock:
            return self._stats.model_copy(update={"size_bytes": self._approx_size_bytes()})

    def size_bytes(self) -> int:
        """Approximate footprint of the live entries; values are measured by their JSON encoding."""
        with self._lock:
            return self._approx_size_bytes()

    def hit_rate(self) -> float:
        with self._lock:
            total = self._stats.hits + self._stats.misses
            return 0.0 if total == 0 else self._stats.hits / total

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ---------------- Internals ----------------

    def _lookup(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return _MISSING

            if self._clock() > entry.expires_at:
                self._evict(key)
                self._stats.misses += 1
                return _MISSING

            self._stats.hits += 1
            return entry.value

    def _approx_size_bytes(self) -> int:
        # caller holds the lock
        total = 0
        for key, entry in self._entries.items():
            total += len(key.encode("utf-8"))
            total += len(to_json(entry.value, serialize_unknown=True))
            total += _ENTRY_OVERHEAD_BYTES
        return total

    def _evict(self, key: str) -> None:
        # caller holds the lock
        del self._entries[key]
        self._stats.deletes += 1
        self._stats.size = len(self._entries)
