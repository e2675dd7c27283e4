"""Unit tests for the counter store factory."""

from unittest.mock import patch

import pytest

from admission_gate.adapters.counter_store import (
    InMemoryCounterStore,
    RedisCounterStore,
    create_counter_store,
)
from admission_gate.core.config import GateSettings
from admission_gate.core.errors import ConfigurationError


def test_memory_backend() -> None:
    store = create_counter_store(GateSettings(store_backend="memory"))

    assert isinstance(store, InMemoryCounterStore)


def test_redis_backend_uses_url_and_timeout() -> None:
    cfg = GateSettings(store_backend="redis", redis_url="redis://cache:6379/2", store_timeout_seconds=0.25)

    with patch.object(RedisCounterStore, "from_url") as from_url:
        store = create_counter_store(cfg)

    from_url.assert_called_once_with("redis://cache:6379/2", timeout_seconds=0.25)
    assert store is from_url.return_value


def test_unknown_backend() -> None:
    cfg = GateSettings.model_construct(store_backend="memcached")

    with pytest.raises(ConfigurationError) as exc_info:
        create_counter_store(cfg)

    assert exc_info.value.code == "store_unknown_backend"
