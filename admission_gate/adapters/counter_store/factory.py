"""Factory for creating counter store instances."""

from __future__ import annotations

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from admission_gate.adapters.counter_store.redis_store import RedisCounterStore
from admission_gate.core.config import GateSettings, settings
from admission_gate.core.errors import ConfigurationError


def create_counter_store(gate_settings: GateSettings | None = None) -> AbstractCounterStore:
    """Instantiate the counter store selected by configuration.

    Args:
        gate_settings: Optional settings; defaults to the global settings.

    Returns:
        AbstractCounterStore: Configured store.

    Raises:
        ConfigurationError: If the backend is unknown.
    """
    cfg = gate_settings or settings.gate
    backend = cfg.store_backend.lower()

    if backend == "memory":
        return InMemoryCounterStore()

    if backend == "redis":
        return RedisCounterStore.from_url(cfg.redis_url, timeout_seconds=cfg.store_timeout_seconds)

    raise ConfigurationError(
        code="store_unknown_backend",
        message=f"Unknown counter store backend: '{cfg.store_backend}'. Supported: memory, redis",
    )
