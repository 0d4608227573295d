from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from .utils import log_event

KEY_PREFIX = "feed:"


def feed_key(source_url: str) -> str:
    return KEY_PREFIX + source_url


class MemoryCache:
    """Capacity-bounded TTL map of assembled feeds.

    Values are kept by reference; callers must not mutate what they get
    back. Expired keys are swept at most once per ``check_period`` on access
    and are never returned. When full, expired keys go first, then the
    oldest insertion.
    """

    def __init__(
        self,
        ttl_seconds: float = 86400,
        check_period_seconds: float = 3600,
        max_keys: int = 100,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.check_period_seconds = check_period_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._logger = logger or logging.getLogger("pagefeeds.cache")
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, Any]] = {}
        self._last_sweep = clock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            self._maybe_sweep()
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= self._clock():
                self._expire(key)
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        with self._lock:
            self._maybe_sweep()
            if key not in self._entries and len(self._entries) >= self.max_keys:
                self._sweep()
                while len(self._entries) >= self.max_keys:
                    oldest = next(iter(self._entries))
                    del self._entries[oldest]
                    log_event(self._logger, logging.DEBUG, "cache_evicted", key=oldest)
            self._entries.pop(key, None)
            ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
            self._entries[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def keys(self) -> list[str]:
        with self._lock:
            self._sweep()
            return list(self._entries.keys())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _maybe_sweep(self) -> None:
        if self._clock() - self._last_sweep >= self.check_period_seconds:
            self._sweep()

    def _sweep(self) -> None:
        now = self._clock()
        self._last_sweep = now
        for key in [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]:
            self._expire(key)

    def _expire(self, key: str) -> None:
        del self._entries[key]
        log_event(self._logger, logging.DEBUG, "cache_expired", key=key)
