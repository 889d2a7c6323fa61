"""
Threshold configuration schema.

Defines the human-authored, reviewable source artifact for approval
thresholds.  YAML files are parsed into these types by the loader and
compiled into a ``ThresholdRegistry`` by the registry module.

Key distinction:
  ThresholdSetDef   = source artifact (human-authored, versioned, strings)
  ThresholdRegistry = runtime artifact (typed, Decimal ceilings, read-only)
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AutoApproveConditionsDef:
    """Ceilings as authored.  Numbers stay strings until compiled."""

    max_discount_percentage: str | None = None
    max_fixed_amount: str | None = None
    max_price_change_percentage: str | None = None


@dataclass(frozen=True)
class ThresholdDef:
    """One request type's approval policy."""

    request_type: str
    auto_approve_conditions: AutoApproveConditionsDef | None = None
    requires_approval: bool = True
    notify_on_auto_approve: bool = False
    expiration_hours: int | None = None


@dataclass(frozen=True)
class ThresholdSetDef:
    """A named, versioned collection of thresholds."""

    name: str
    version: int
    thresholds: tuple[ThresholdDef, ...] = ()
    checksum: str = field(default="", compare=False)
