"""Redis-backed counter store.

Counters are plain string values set with ``SET key value EX ttl``. Incrementing
runs a small Lua script so the key is only ``INCR``-ed when it already exists:
a bare ``INCR`` would silently create a counter without expiration.
"""

from __future__ import annotations

import logging
from typing import Any

import redis
from redis.exceptions import RedisError

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.core.errors import StoreOperationFailed

logger = logging.getLogger(__name__)


# KEYS[1] = counter key
# Returns the new value, or nil (None in Python) when the key is absent.
INCREMENT_EXISTING_LUA = r"""
if redis.call('EXISTS', KEYS[1]) == 1 then
  return redis.call('INCR', KEYS[1])
end
return false
"""


class RedisCounterStore(AbstractCounterStore):
    """Counter store shared across processes through Redis."""

    def __init__(self, client: redis.Redis) -> None:
        """Wrap an existing client.

        Args:
            client: Redis client; its socket timeout bounds every store call.
        """
        self._client = client
        self._increment_script = client.register_script(INCREMENT_EXISTING_LUA)

    @classmethod
    def from_url(cls, url: str, *, timeout_seconds: float = 1.0) -> RedisCounterStore:
        client = redis.Redis.from_url(
            url,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
            decode_responses=True,
        )
        return cls(client)

    def get(self, key: str) -> int | None:
        raw = self._call("get", key, self._client.get, key)
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise StoreOperationFailed(
                code="store_corrupt_counter",
                message=f"Counter under {key} is not an integer",
                details={"operation": "get", "key": key},
            ) from exc

    def set(self, key: str, value: int, ttl_seconds: int) -> bool:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        if ttl_seconds:
            result = self._call("set", key, self._client.set, key, int(value), ex=ttl_seconds)
        else:
            result = self._call("set", key, self._client.set, key, int(value))
        return bool(result)

    def increment(self, key: str) -> bool:
        result = self._call("increment", key, self._increment_script, keys=[key])
        return result is not None

    def delete(self, key: str) -> bool:
        return bool(self._call("delete", key, self._client.delete, key))

    def _call(self, operation: str, key: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except RedisError as exc:
            logger.error(
                "counter_store.redis_error",
                extra={
                    "operation": operation,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise StoreOperationFailed(
                code="store_unavailable",
                message=f"Counter store {operation} failed: {type(exc).__name__}",
                details={"operation": operation, "key": key},
            ) from exc
