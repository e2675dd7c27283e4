"""Admission dependency for FastAPI routes.

This module wires the admission engine into the HTTP layer.

Design goals:
- Minimal coupling: routes declare the function name they consume quota from.
- Swap-friendly: the engine and its counter store live on ``app.state`` and
  are provided by the application factory (or by tests).
- Fail closed on store failure: ``StoreOperationFailed`` propagates and is
  rendered as 503 by the exception handlers.

Usage:
    @router.get(
        "/reports/{report_id}",
        dependencies=[Depends(require_admission("reports", sub_id_param="report_id"))],
    )
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request

from admission_gate.core.config import settings
from admission_gate.core.errors import (
    CallLimitReachedError,
    FunctionNotConfiguredError,
    OriginNotResolvedError,
)
from admission_gate.core.origin import request_origin_resolver
from admission_gate.services.admission_service import (
    AdmissionDecision,
    AdmissionEngine,
    Outcome,
)

logger = logging.getLogger(__name__)


def get_admission_engine(request: Request) -> AdmissionEngine:
    """Return the engine attached to the running application."""

    engine = getattr(request.app.state, "admission_engine", None)
    if engine is None:
        raise RuntimeError("No admission engine configured on app.state")
    return engine


def _sub_id_from_request(request: Request, sub_id_param: str | None) -> str:
    if not sub_id_param:
        return ""
    value = request.path_params.get(sub_id_param)
    if value is None:
        value = request.query_params.get(sub_id_param)
    return "" if value is None else str(value)


def _raise_for_outcome(decision: AdmissionDecision) -> None:
    details = {"function_name": decision.function_name, "sub_id": decision.sub_id}

    if decision.outcome is Outcome.LIMIT_REACHED:
        raise CallLimitReachedError(
            code="call_limit_reached",
            message="Call limit reached. Try again later.",
            details=details,
        )
    if decision.outcome is Outcome.FUNCTION_NOT_FOUND:
        raise FunctionNotConfiguredError(
            code="function_not_configured",
            message=f"No quota configured for function '{decision.function_name}'",
            details=details,
        )
    if decision.outcome is Outcome.ORIGIN_NOT_RESOLVED:
        raise OriginNotResolvedError(
            code="origin_not_resolved",
            message="Could not determine the client address",
            details=details,
        )


def require_admission(
    function_name: str,
    *,
    sub_id_param: str | None = None,
) -> Callable[[Request], AdmissionDecision]:
    """Build a FastAPI dependency consuming one call from ``function_name``'s quota.

    Args:
        function_name: Configured function name.
        sub_id_param: Optional path or query parameter whose value narrows the
            quota (the sub-identifier).

    Returns:
        Dependency returning the AdmissionDecision of an admitted call.

    Raises:
        AdmissionRejectedError: Subclass matching the rejection outcome.
        StoreOperationFailed: When the counter store failed.
    """

    def dependency(request: Request) -> AdmissionDecision:
        engine = get_admission_engine(request)
        resolver = request_origin_resolver(
            request,
            header_name=settings.gate.forwarded_header,
            trust_forwarded=settings.gate.trust_forwarded_header,
        )
        sub_id = _sub_id_from_request(request, sub_id_param)

        decision = engine.check(function_name, sub_id, origin_resolver=resolver)
        decision.raise_for_error()
        if not decision.allowed:
            _raise_for_outcome(decision)
        return decision

    return dependency
