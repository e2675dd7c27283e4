"""Counter store adapters.

The admission engine depends only on :class:`AbstractCounterStore`; the
in-memory store serves tests and single-process deployments while the Redis
store shares counters between processes and hosts.
"""

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.adapters.counter_store.factory import create_counter_store
from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from admission_gate.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "create_counter_store",
]
