"""Application factory for the admission gate HTTP surface.

Centralizes app construction (engine, middleware, handlers, routers) so tests
can inject their own engine and counter store.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from admission_gate.adapters.counter_store import create_counter_store
from admission_gate.api.routes import health_router
from admission_gate.core.config import GateSettings, settings
from admission_gate.core.exception_handlers import setup_exception_handlers
from admission_gate.core.logging import configure_logging
from admission_gate.core.middleware import request_id_middleware
from admission_gate.core.policy import PolicyModel, load_policy_file
from admission_gate.services.admission_service import AdmissionEngine

logger = logging.getLogger(__name__)


def build_admission_engine(gate_settings: GateSettings | None = None) -> AdmissionEngine:
    """Create an engine from configuration.

    Raises:
        ConfigurationError: If the policy file is unreadable or malformed.
    """
    cfg = gate_settings or settings.gate

    policy = load_policy_file(cfg.policy_file) if cfg.policy_file else PolicyModel()
    if not cfg.policy_file:
        logger.warning("policy.not_configured", extra={"hint": "set GATE_POLICY_FILE"})

    return AdmissionEngine(
        create_counter_store(cfg),
        policy,
        key_prefix=cfg.key_prefix,
    )


def create_app(engine: AdmissionEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        engine: Admission engine to expose; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(title="Admission Gate", version="0.1.0")
    app.state.admission_engine = engine or build_admission_engine()

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)
    app.include_router(health_router)

    return app
