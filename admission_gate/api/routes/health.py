from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Returns:
        dict: ``status`` set to "ok" and the function names with a configured quota.
    """

    engine = request.app.state.admission_engine
    return {"status": "ok", "functions": engine.policy.function_names}
