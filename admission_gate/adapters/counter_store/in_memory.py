"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective quotas.
- Thread-safe: uses a lock around shared state.
- Expiration follows memcached semantics: a TTL of 0 never expires.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from admission_gate.adapters.counter_store.base import AbstractCounterStore

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Dict-backed counter store with lazy expiration.

    Important:
        This store is per-process only. Deployments running several workers
        should use the Redis store so every worker shares the same counters.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired_locked()
            return len(self._entries)

    def get(self, key: str) -> int | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            return entry.value if entry else None

    def set(self, key: str, value: int, ttl_seconds: int) -> bool:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")

        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._evict_expired_locked()
            self._entries[key] = _Entry(value=int(value), expires_at=expires_at)
        logger.debug("counter_store.set", extra={"ttl_s": ttl_seconds})
        return True

    def increment(self, key: str) -> bool:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return False
            entry.value += 1
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all counters."""

        with self._lock:
            self._entries.clear()

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        return entry.expires_at is not None and now >= entry.expires_at

    def _live_entry_locked(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry

    def _evict_expired_locked(self) -> None:
        now = self._clock()
        expired_keys = [k for k, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired_keys:
            del self._entries[key]
