"""Admission engine.

Decides whether a call to a named function may proceed, based on the quota
policy and counters kept in a shared counter store.

Two counting modes exist per quota:
- per-origin counting: each origin may call the function ``max_calls`` times
  per ``window``;
- origin-tracked counting (``max_origins > 0``): additionally, at most
  ``max_origins`` distinct origins may call the function within
  ``origin_window``.

Counters only reset through store expiration. Checks are best-effort under
concurrency: two callers reading a value just below ``max_calls`` may both
increment it, letting one call past the nominal cap. Creating a counter is a plain
set, not create-if-absent: two callers seeing the same absent key both
write 1, so one call (or one distinct origin) goes uncounted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.core.errors import StoreOperationFailed
from admission_gate.core.logging import hash_origin
from admission_gate.core.origin import OriginResolver, no_origin
from admission_gate.core.policy import PolicyModel, Quota

logger = logging.getLogger(__name__)

KEY_PREFIX = "ApiLimiter_"


class Outcome(str, Enum):
    """Result of an admission check."""

    ALLOWED = "allowed"
    LIMIT_REACHED = "limit_reached"
    FUNCTION_NOT_FOUND = "function_not_found"
    ORIGIN_NOT_RESOLVED = "origin_not_resolved"


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of :meth:`AdmissionEngine.check`.

    Attributes:
        outcome: Admission outcome, or None when the store failed.
        function_name: Function the check was made for.
        sub_id: Sub-identifier of the call.
        origin: Resolved origin (None when not resolved or not needed).
        error: Store failure that prevented a decision.
    """

    outcome: Outcome | None
    function_name: str
    sub_id: str = ""
    origin: str | None = None
    error: StoreOperationFailed | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOWED

    @property
    def failed(self) -> bool:
        return self.error is not None

    def raise_for_error(self) -> AdmissionDecision:
        """Raise the store failure, if any; otherwise return self."""
        if self.error is not None:
            raise self.error
        return self


def call_count_key(function_name: str, sub_id: str, origin: str, *, prefix: str = KEY_PREFIX) -> str:
    """Key of the per-origin call counter."""
    return f"{prefix}{origin}_{function_name}_{sub_id}"


def origin_count_key(function_name: str, sub_id: str = "", *, prefix: str = KEY_PREFIX) -> str:
    """Key of the distinct-origin counter of a function and sub-identifier."""
    return f"{prefix}{function_name}_{sub_id}"


class AdmissionEngine:
    """Admission checks against a policy and a counter store.

    The engine keeps no per-call state. The policy is replaced wholesale by
    :meth:`replace_policy`; a running check keeps the policy it started with.
    """

    def __init__(
        self,
        store: AbstractCounterStore,
        policy: PolicyModel | None = None,
        *,
        origin_resolver: OriginResolver = no_origin,
        key_prefix: str = KEY_PREFIX,
    ) -> None:
        self._store = store
        self._policy = policy or PolicyModel()
        self._origin_resolver = origin_resolver
        self._key_prefix = key_prefix

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    @property
    def policy(self) -> PolicyModel:
        return self._policy

    def replace_policy(self, policy: PolicyModel) -> None:
        self._policy = policy

    def load_policy(self, config: Mapping[str, Any]) -> PolicyModel:
        """Build a policy from raw configuration and make it current.

        Raises:
            ConfigurationError: If the configuration is malformed; the current
                policy stays in place.
        """
        policy = PolicyModel.load(config)
        self.replace_policy(policy)
        return policy

    def call_count_key(self, function_name: str, sub_id: str, origin: str) -> str:
        return call_count_key(function_name, sub_id, origin, prefix=self._key_prefix)

    def origin_count_key(self, function_name: str, sub_id: str = "") -> str:
        return origin_count_key(function_name, sub_id, prefix=self._key_prefix)

    def check(
        self,
        function_name: str,
        sub_id: str = "",
        origin: str | None = None,
        *,
        origin_resolver: OriginResolver | None = None,
    ) -> AdmissionDecision:
        """Check, and account for, one call to ``function_name``.

        Args:
            function_name: Configured function name (case-sensitive).
            sub_id: Narrows the quota to a parameter of the call, e.g. a
                resource id. Empty by default.
            origin: Caller address. When omitted it is taken from
                ``origin_resolver`` or the engine's default resolver.
            origin_resolver: Resolver for this call only.

        Returns:
            AdmissionDecision. Store failures are reported through
            ``decision.error`` and never turned into an outcome.
        """
        policy = self._policy
        sub_id = "" if sub_id is None else str(sub_id)

        quota = policy.lookup(function_name) if function_name else None
        if quota is None:
            logger.info("admission.function_not_found", extra={"function_name": function_name})
            return AdmissionDecision(Outcome.FUNCTION_NOT_FOUND, function_name or "", sub_id)

        if not origin:
            resolver = origin_resolver or self._origin_resolver
            origin = resolver()
            if not origin:
                logger.warning("admission.origin_not_resolved", extra={"function_name": function_name})
                return AdmissionDecision(Outcome.ORIGIN_NOT_RESOLVED, function_name, sub_id)

        if quota.unlimited:
            return AdmissionDecision(Outcome.ALLOWED, function_name, sub_id, origin)

        try:
            if quota.tracks_origins:
                outcome = self._check_origin_tracked(quota, function_name, sub_id, origin)
            else:
                outcome = self._check_per_origin(quota, function_name, sub_id, origin)
        except StoreOperationFailed as exc:
            logger.error(
                "admission.store_failed",
                extra={
                    "function_name": function_name,
                    "sub_id": sub_id,
                    "error_code": exc.code,
                    "error_message": exc.message,
                },
            )
            return AdmissionDecision(None, function_name, sub_id, origin, error=exc)

        log_extra = {
            "function_name": function_name,
            "sub_id": sub_id,
            "origin_hash": hash_origin(origin),
            "max_calls": quota.max_calls,
            "window_s": quota.window,
            "max_origins": quota.max_origins,
        }
        if outcome is Outcome.LIMIT_REACHED:
            logger.warning("admission.limit_reached", extra=log_extra)
        else:
            logger.debug("admission.allowed", extra=log_extra)

        return AdmissionDecision(outcome, function_name, sub_id, origin)

    def _check_per_origin(self, quota: Quota, function_name: str, sub_id: str, origin: str) -> Outcome:
        key = self.call_count_key(function_name, sub_id, origin)

        count = self._store.get(key)
        if count is None:
            self._set(key, 1, quota.window)
            return Outcome.ALLOWED

        # Saturated counters are left as is until the store expires them.
        if count >= quota.max_calls:
            return Outcome.LIMIT_REACHED

        self._increment(key)
        return Outcome.ALLOWED

    def _check_origin_tracked(self, quota: Quota, function_name: str, sub_id: str, origin: str) -> Outcome:
        key = self.call_count_key(function_name, sub_id, origin)
        origins_key = self.origin_count_key(function_name, sub_id)

        count = self._store.get(key)
        if count is None:
            # A new origin for this window. The call is logged before the
            # distinct-origin cap is checked, so a rejected origin still holds
            # a window slot.
            self._set(key, 1, quota.window)

            origins = self._store.get(origins_key)
            if origins is None:
                self._set(origins_key, 1, quota.origin_window)
            elif origins >= quota.max_origins:
                return Outcome.LIMIT_REACHED
            else:
                self._increment(origins_key)
            return Outcome.ALLOWED

        if quota.max_calls > 0 and count >= quota.max_calls:
            return Outcome.LIMIT_REACHED

        self._increment(key)

        # The origin counter outlives call counters but may still lapse first;
        # an origin calling right now counts as seen.
        if self._store.get(origins_key) is None:
            self._set(origins_key, 1, quota.origin_window)
        return Outcome.ALLOWED

    def _set(self, key: str, value: int, ttl_seconds: int) -> None:
        if not self._store.set(key, value, ttl_seconds):
            raise StoreOperationFailed(
                code="store_set_failed",
                message=f"Error setting key value {key}",
                details={"operation": "set", "key": key},
            )

    def _increment(self, key: str) -> None:
        if not self._store.increment(key):
            raise StoreOperationFailed(
                code="store_increment_failed",
                message=f"Error incrementing key: {key}",
                details={"operation": "increment", "key": key},
            )
