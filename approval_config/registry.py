"""
Compiled threshold registry (``approval_config.registry``).

Responsibility
--------------
Turns a ``ThresholdSetDef`` into read-only runtime configuration: one
``ApprovalThreshold`` per request type with ``Decimal`` ceilings.

Invariants enforced
-------------------
* Read-only: ``with_overrides`` returns a new registry; the receiver is
  never mutated.
* A request type absent from the registry has no auto-approval path.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from decimal import Decimal
from types import MappingProxyType

from approval_config.schema import AutoApproveConditionsDef, ThresholdDef, ThresholdSetDef
from approval_kernel.domain.approval import (
    ApprovalRequestType,
    ApprovalThreshold,
    AutoApproveConditions,
)


def _decimal(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def compile_conditions(
    conditions: AutoApproveConditionsDef | None,
) -> AutoApproveConditions | None:
    if conditions is None:
        return None
    return AutoApproveConditions(
        max_discount_percentage=_decimal(conditions.max_discount_percentage),
        max_fixed_amount=_decimal(conditions.max_fixed_amount),
        max_price_change_percentage=_decimal(conditions.max_price_change_percentage),
    )


def compile_threshold(threshold: ThresholdDef) -> ApprovalThreshold:
    return ApprovalThreshold(
        request_type=ApprovalRequestType(threshold.request_type),
        auto_approve_conditions=compile_conditions(threshold.auto_approve_conditions),
        requires_approval=threshold.requires_approval,
        notify_on_auto_approve=threshold.notify_on_auto_approve,
        expiration_hours=threshold.expiration_hours,
    )


class ThresholdRegistry:
    """Per-type approval policy lookup."""

    def __init__(
        self,
        thresholds: Mapping[ApprovalRequestType, ApprovalThreshold],
        name: str = "custom",
        version: int = 0,
        checksum: str = "",
    ):
        self._thresholds = MappingProxyType(dict(thresholds))
        self._name = name
        self._version = version
        self._checksum = checksum

    @classmethod
    def from_set(cls, threshold_set: ThresholdSetDef) -> ThresholdRegistry:
        compiled = {}
        for definition in threshold_set.thresholds:
            threshold = compile_threshold(definition)
            compiled[threshold.request_type] = threshold
        return cls(
            compiled,
            name=threshold_set.name,
            version=threshold_set.version,
            checksum=threshold_set.checksum,
        )

    @classmethod
    def from_thresholds(cls, *thresholds: ApprovalThreshold) -> ThresholdRegistry:
        return cls({t.request_type: t for t in thresholds})

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> int:
        return self._version

    @property
    def checksum(self) -> str:
        return self._checksum

    def get(self, request_type: ApprovalRequestType | str) -> ApprovalThreshold | None:
        return self._thresholds.get(ApprovalRequestType(request_type))

    def with_overrides(self, *thresholds: ApprovalThreshold) -> ThresholdRegistry:
        """New registry with ``thresholds`` replacing entries of the same type."""
        merged = dict(self._thresholds)
        for threshold in thresholds:
            merged[threshold.request_type] = threshold
        return ThresholdRegistry(
            merged,
            name=f"{self._name}+overrides",
            version=self._version,
        )

    def types(self) -> tuple[ApprovalRequestType, ...]:
        return tuple(self._thresholds)

    def __contains__(self, request_type: object) -> bool:
        try:
            return ApprovalRequestType(request_type) in self._thresholds
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._thresholds)

    def __iter__(self) -> Iterator[ApprovalThreshold]:
        return iter(self._thresholds.values())

    def __repr__(self) -> str:
        return f"<ThresholdRegistry {self._name} v{self._version} types={len(self)}>"
