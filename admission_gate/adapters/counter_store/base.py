"""Counter store interface.

The admission engine depends on this abstraction (not a concrete client) so
tests can substitute a fake store and deployments can pick a shared backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCounterStore(ABC):
    """Key-value store with integer counters and per-key expiration.

    A ``ttl_seconds`` of 0 means the entry never expires. Implementations raise
    :class:`~admission_gate.core.errors.StoreOperationFailed` on connection
    errors and timeouts; ``set``/``increment``/``delete`` return False when the
    store itself refuses the operation.
    """

    @abstractmethod
    def get(self, key: str) -> int | None:
        """Return the counter value, or None when the key is absent or expired."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: int, ttl_seconds: int) -> bool:
        """Store ``value`` under ``key`` expiring after ``ttl_seconds``.

        Returns:
            True when the value was stored.
        """
        raise NotImplementedError

    @abstractmethod
    def increment(self, key: str) -> bool:
        """Atomically add one to an existing counter.

        Never creates the key and leaves its expiration untouched.

        Returns:
            True when incremented, False when the key is absent.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``.

        Returns:
            True when a key was removed.
        """
        raise NotImplementedError
