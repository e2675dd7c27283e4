"""Tests for building the engine and app from configuration."""

import json
from pathlib import Path

import pytest

from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from admission_gate.core.app_factory import build_admission_engine, create_app
from admission_gate.core.config import GateSettings
from admission_gate.core.errors import ConfigurationError
from admission_gate.services.admission_service import Outcome

from conftest import OPTIONS


def test_build_engine_from_policy_file(tmp_path: Path) -> None:
    path = tmp_path / "options.json"
    path.write_text(json.dumps(OPTIONS))

    engine = build_admission_engine(GateSettings(policy_file=str(path), store_backend="memory"))

    assert isinstance(engine.store, InMemoryCounterStore)
    assert engine.policy.function_names == ["functionTest1", "functionTest2"]
    assert engine.check("functionTest1", origin="10.0.0.1").outcome is Outcome.ALLOWED


def test_build_engine_uses_configured_key_prefix() -> None:
    engine = build_admission_engine(GateSettings(key_prefix="Gate_", store_backend="memory"))

    assert engine.origin_count_key("f") == "Gate_f_"


def test_build_engine_without_policy_file_knows_no_function() -> None:
    engine = build_admission_engine(GateSettings(store_backend="memory"))

    assert len(engine.policy) == 0


def test_build_engine_with_missing_policy_file_fails(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        build_admission_engine(GateSettings(policy_file=str(tmp_path / "nope.json")))


def test_create_app_attaches_engine() -> None:
    app = create_app()

    assert app.state.admission_engine is not None
