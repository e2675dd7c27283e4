from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from admission_gate.core.admission import require_admission
from admission_gate.core.app_factory import create_app
from admission_gate.core.config import settings
from admission_gate.core.policy import PolicyModel
from admission_gate.services.admission_service import AdmissionEngine


@pytest.fixture
def gated_app() -> FastAPI:
    policy = PolicyModel.load({"once": {"max_calls": 1, "window": 60, "max_origins": 0}})
    app = create_app(AdmissionEngine(InMemoryCounterStore(), policy))

    @app.get("/once", dependencies=[Depends(require_admission("once"))])
    def once() -> dict:
        return {"ok": True}

    return app


def test_rejection_body_carries_incoming_request_id(gated_app: FastAPI):
    client = TestClient(gated_app)
    assert client.get("/once", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 200

    resp = client.get("/once", headers={"X-Forwarded-For": "10.0.0.1", "X-Request-ID": "req-limit-1"})

    assert resp.status_code == 429
    assert resp.json()["error"]["request_id"] == "req-limit-1"
    assert resp.headers.get("X-Request-ID") == "req-limit-1"


def test_generated_request_id_matches_rejection_body(gated_app: FastAPI):
    client = TestClient(gated_app)
    client.get("/once", headers={"X-Forwarded-For": "10.0.0.2"})

    resp = client.get("/once", headers={"X-Forwarded-For": "10.0.0.2"})

    assert resp.status_code == 429
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert resp.json()["error"]["request_id"] == generated
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_configured_request_id_header_is_used(gated_app: FastAPI, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings.log, "request_id_header", "X-Correlation-ID")
    client = TestClient(gated_app)

    resp = client.get("/health", headers={"X-Correlation-ID": "corr-7"})

    assert resp.status_code == 200
    assert resp.headers.get("X-Correlation-ID") == "corr-7"
    assert "X-Request-ID" not in resp.headers
