"""Quota policy model.

A policy maps function names (case-sensitive) to a :class:`Quota`. The JSON
format accepted by :func:`load_policy_file` is the historical options document::

    {
        "functionName": {
            "allowedCalls": 100,
            "timeframe": 1000,
            "allowedIPSources": 0,
            "IPSourcesExpiration": 1000
        }
    }

Snake-case field names (``max_calls``, ``window``, ``max_origins``,
``origin_window``) are accepted as well.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from admission_gate.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Quota(BaseModel):
    """Per-function quota.

    Attributes:
        max_calls: Calls allowed per origin within ``window`` (0 = unlimited).
        window: Call-count window in seconds.
        max_origins: Distinct origins allowed within ``origin_window``
            (0 disables origin tracking).
        origin_window: Lifetime of the distinct-origin counter in seconds.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    max_calls: int = Field(..., alias="allowedCalls", ge=0, strict=True)
    window: int = Field(..., alias="timeframe", ge=0, strict=True)
    max_origins: int = Field(..., alias="allowedIPSources", ge=0, strict=True)
    origin_window: int = Field(0, alias="IPSourcesExpiration", ge=0, strict=True)

    @model_validator(mode="before")
    @classmethod
    def _require_origin_window(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            max_origins = data.get("max_origins", data.get("allowedIPSources"))
            has_window = "origin_window" in data or "IPSourcesExpiration" in data
            if isinstance(max_origins, int) and max_origins > 0 and not has_window:
                raise ValueError("origin_window is required when max_origins > 0")
        return data

    @property
    def unlimited(self) -> bool:
        """True when no counters need to be kept for this function."""
        return self.max_origins == 0 and (self.max_calls == 0 or self.window == 0)

    @property
    def tracks_origins(self) -> bool:
        return self.max_origins > 0


class PolicyModel:
    """Immutable mapping from function name to :class:`Quota`."""

    __slots__ = ("_quotas",)

    def __init__(self, quotas: Mapping[str, Quota] | None = None) -> None:
        self._quotas: Mapping[str, Quota] = MappingProxyType(dict(quotas or {}))

    @classmethod
    def load(cls, config: Mapping[str, Any]) -> PolicyModel:
        """Build a new policy from a ``function name -> quota fields`` mapping.

        Args:
            config: Raw configuration, e.g. a decoded JSON document.

        Returns:
            A fresh PolicyModel; nothing is merged with previous policies.

        Raises:
            ConfigurationError: If the mapping or any quota definition is malformed.
        """
        if not isinstance(config, Mapping):
            raise ConfigurationError(
                code="policy_not_a_mapping",
                message="Policy configuration must map function names to quotas",
            )

        quotas: dict[str, Quota] = {}
        for name, fields in config.items():
            if not isinstance(name, str) or not name:
                raise ConfigurationError(
                    code="policy_invalid_function_name",
                    message="Function names must be non-empty strings",
                    details={"function_name": str(name)},
                )
            if isinstance(fields, Quota):
                quotas[name] = fields
                continue
            if not isinstance(fields, Mapping):
                raise ConfigurationError(
                    code="policy_invalid_quota",
                    message=f"Quota for '{name}' must be an object",
                    details={"function_name": name},
                )
            try:
                quotas[name] = Quota.model_validate(dict(fields))
            except ValidationError as exc:
                first = exc.errors()[0]
                raise ConfigurationError(
                    code="policy_invalid_quota",
                    message=f"Invalid quota for '{name}': {first['msg']}",
                    details={
                        "function_name": name,
                        "field": ".".join(str(p) for p in first["loc"]),
                    },
                ) from exc

        logger.info("policy.loaded", extra={"functions": len(quotas)})
        return cls(quotas)

    def lookup(self, function_name: str) -> Quota | None:
        """Return the quota for ``function_name`` or None when not configured."""
        return self._quotas.get(function_name)

    @property
    def function_names(self) -> list[str]:
        return sorted(self._quotas)

    def __contains__(self, function_name: object) -> bool:
        return function_name in self._quotas

    def __len__(self) -> int:
        return len(self._quotas)

    def __iter__(self) -> Iterator[str]:
        return iter(self._quotas)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"PolicyModel(functions={self.function_names})"


def load_policy_file(path: str | Path) -> PolicyModel:
    """Load a policy from a JSON file.

    Raises:
        ConfigurationError: If the file cannot be read or is not valid JSON.
    """
    file_path = Path(path)
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(
            code="policy_file_unreadable",
            message=f"Cannot read policy file: {exc.strerror or exc}",
            details={"path": str(file_path)},
        ) from exc

    try:
        document = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            code="policy_file_invalid_json",
            message=f"Policy file is not valid JSON: {exc.msg}",
            details={"path": str(file_path)},
        ) from exc

    return PolicyModel.load(document)
