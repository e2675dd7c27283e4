"""Unit tests for the in-memory counter store."""

import threading

import pytest

from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore


def test_get_missing_key_returns_none(store: InMemoryCounterStore) -> None:
    assert store.get("missing") is None


def test_set_then_get(store: InMemoryCounterStore) -> None:
    assert store.set("k", 1, 10) is True
    assert store.get("k") == 1


def test_entry_expires_after_ttl(store: InMemoryCounterStore, clock) -> None:
    store.set("k", 1, 10)

    clock.advance(9.9)
    assert store.get("k") == 1

    clock.advance(0.1)
    assert store.get("k") is None


def test_zero_ttl_never_expires(store: InMemoryCounterStore, clock) -> None:
    store.set("k", 7, 0)

    clock.advance(10_000_000)

    assert store.get("k") == 7


def test_increment_existing_key_keeps_expiration(store: InMemoryCounterStore, clock) -> None:
    store.set("k", 1, 10)
    clock.advance(5)

    assert store.increment("k") is True
    assert store.get("k") == 2

    clock.advance(5)
    assert store.get("k") is None


def test_increment_never_creates_a_key(store: InMemoryCounterStore) -> None:
    assert store.increment("missing") is False
    assert store.get("missing") is None


def test_increment_expired_key_fails(store: InMemoryCounterStore, clock) -> None:
    store.set("k", 1, 1)
    clock.advance(1)

    assert store.increment("k") is False


def test_delete(store: InMemoryCounterStore) -> None:
    store.set("k", 1, 10)

    assert store.delete("k") is True
    assert store.delete("k") is False
    assert store.get("k") is None


def test_len_ignores_expired_entries(store: InMemoryCounterStore, clock) -> None:
    store.set("short", 1, 1)
    store.set("long", 1, 100)
    clock.advance(1)

    assert len(store) == 1


def test_clear(store: InMemoryCounterStore) -> None:
    store.set("a", 1, 10)
    store.set("b", 1, 10)

    store.clear()

    assert len(store) == 0


def test_negative_ttl_is_rejected(store: InMemoryCounterStore) -> None:
    with pytest.raises(ValueError):
        store.set("k", 1, -1)


def test_concurrent_increments_are_not_lost() -> None:
    store = InMemoryCounterStore()
    store.set("k", 0, 0)

    def _worker() -> None:
        for _ in range(100):
            store.increment("k")

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.get("k") == 800


def test_set_evicts_expired_entries_of_other_keys(store: InMemoryCounterStore, clock) -> None:
    for idx in range(1_000):
        store.set(f"origin-{idx}", 1, 3)

    clock.advance(3600)
    store.set("fresh", 1, 3)

    assert list(store._entries) == ["fresh"]


def test_set_keeps_live_and_non_expiring_entries(store: InMemoryCounterStore, clock) -> None:
    store.set("short", 1, 1)
    store.set("long", 1, 100)
    store.set("forever", 1, 0)

    clock.advance(50)
    store.set("fresh", 1, 3)

    assert sorted(store._entries) == ["forever", "fresh", "long"]
