"""Application-level exception types.

This module defines the errors raised by the policy loader, the counter store
adapters and the HTTP admission layer, so they can be logged and rendered
consistently.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    function_name: str
    sub_id: str
    operation: str
    key: str
    path: str
    field: str
    http_status: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationError(AppError):
    """Raised when a quota policy or the settings are malformed.

    Only raised while loading configuration, never during an admission check.
    """


class StoreOperationFailed(AppError):
    """Raised when the counter store cannot complete an operation.

    Covers writes the store reports as failed as well as connection errors and
    timeouts. Callers decide whether to fail open or closed.
    """


class AdmissionRejectedError(AppError):
    """Raised by the HTTP layer when a call is not admitted."""


class CallLimitReachedError(AdmissionRejectedError):
    """The quota for the function is exhausted for this origin."""


class FunctionNotConfiguredError(AdmissionRejectedError):
    """No quota is configured for the requested function name."""


class OriginNotResolvedError(AdmissionRejectedError):
    """The calling origin could not be determined."""
