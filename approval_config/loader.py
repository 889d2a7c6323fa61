"""
Threshold Loader (``approval_config.loader``).

Responsibility
--------------
Loads threshold YAML files and parses them into typed
``approval_config.schema`` dataclass instances.  Runtime callers go
through ``approval_config.get_threshold_registry()``; this module is the
parsing step underneath it.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on the
kernel services, engines, or runtime services.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required keys.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown request type, malformed number, duplicate type  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from approval_config.schema import (
    AutoApproveConditionsDef,
    ThresholdDef,
    ThresholdSetDef,
)
from approval_kernel.domain.approval import ApprovalRequestType

_CONDITION_KEYS = (
    "max_discount_percentage",
    "max_fixed_amount",
    "max_price_change_percentage",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_number(key: str, value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected a number, got {value!r}")
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key}: expected a number, got {value!r}") from None
    if not number.is_finite() or number < 0:
        raise ValueError(f"{key}: must be a non-negative number, got {value!r}")
    return str(value)


def parse_conditions(data: dict[str, Any] | None) -> AutoApproveConditionsDef | None:
    """Parse the optional ``auto_approve_conditions`` block."""
    if data is None:
        return None
    unknown = set(data) - set(_CONDITION_KEYS)
    if unknown:
        raise ValueError(f"Unknown auto-approve condition(s): {sorted(unknown)}")
    return AutoApproveConditionsDef(
        **{key: _parse_number(key, data.get(key)) for key in _CONDITION_KEYS}
    )


def parse_threshold(data: dict[str, Any]) -> ThresholdDef:
    """
    Parse a ``ThresholdDef`` from a dict.

    Raises:
        KeyError: if ``request_type`` is missing.
        ValueError: for an unknown request type or a malformed number.
    """
    raw_type = data["request_type"]
    try:
        request_type = ApprovalRequestType(raw_type).value
    except ValueError:
        raise ValueError(f"Unknown request type: {raw_type!r}") from None

    hours = data.get("expiration_hours")
    if hours is not None:
        if isinstance(hours, bool) or not isinstance(hours, int) or hours <= 0:
            raise ValueError(
                f"{request_type}: expiration_hours must be a positive integer, got {hours!r}"
            )

    return ThresholdDef(
        request_type=request_type,
        auto_approve_conditions=parse_conditions(data.get("auto_approve_conditions")),
        requires_approval=bool(data.get("requires_approval", True)),
        notify_on_auto_approve=bool(data.get("notify_on_auto_approve", False)),
        expiration_hours=hours,
    )


def parse_threshold_set(data: dict[str, Any]) -> ThresholdSetDef:
    """
    Parse a ``ThresholdSetDef`` from a whole YAML document.

    Raises:
        KeyError: if ``name``, ``version`` or ``thresholds`` is missing.
        ValueError: if a request type appears twice.
    """
    thresholds = tuple(parse_threshold(t) for t in data["thresholds"])

    seen: set[str] = set()
    for threshold in thresholds:
        if threshold.request_type in seen:
            raise ValueError(f"Duplicate threshold for {threshold.request_type}")
        seen.add(threshold.request_type)

    return ThresholdSetDef(
        name=data["name"],
        version=int(data["version"]),
        thresholds=thresholds,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
