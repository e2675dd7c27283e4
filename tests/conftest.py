"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING environment variable so no .env file is loaded.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("GATE_STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "json")

import pytest

from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from admission_gate.core.policy import PolicyModel
from admission_gate.services.admission_service import AdmissionEngine


class FakeClock:
    """Deterministic clock used to simulate counter expiration."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


# Mirrors the options document used against the historical memcached store.
OPTIONS = {
    "functionTest1": {
        "allowedCalls": 2,
        "timeframe": 3,
        "allowedIPSources": 0,
        "IPSourcesExpiration": 0,
    },
    "functionTest2": {
        "allowedCalls": 100,
        "timeframe": 3,
        "allowedIPSources": 2,
        "IPSourcesExpiration": 3,
    },
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture
def policy() -> PolicyModel:
    return PolicyModel.load(OPTIONS)


@pytest.fixture
def engine(store: InMemoryCounterStore, policy: PolicyModel) -> AdmissionEngine:
    return AdmissionEngine(store, policy, origin_resolver=lambda: "127.0.0.1")
