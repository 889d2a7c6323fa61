"""
approval_engines.auto_approval -- Pure auto-approval rule evaluation.

Responsibility:
    Decide whether a proposed action is within the configured ceilings for
    its type and may therefore be approved at creation without review.
    Callable on its own so a submission surface can preview the outcome.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Takes the compiled
    threshold registry as an argument; never loads configuration.

Invariants enforced:
    - Every comparison is ``value <= ceiling``; equality passes.
    - An unset ceiling evaluates as 0.
    - FLASH_SALE never auto-approves, whatever the configuration says.
    - A type absent from the registry, or present without conditions,
      never auto-approves.
    - ``requires_approval`` is descriptive only; it never bypasses the
      ceilings or the missing-conditions rule.

Failure modes:
    - InvalidArgumentError from ``parse_payload`` for a malformed payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Protocol

from approval_engines.tracer import traced_engine
from approval_kernel.domain.approval import (
    ApprovalRequestType,
    ApprovalThreshold,
    AutoApprovalEvaluation,
    AutoApproveConditions,
)
from approval_kernel.domain.payloads import (
    ApprovalPayload,
    BulkDiscountData,
    CouponApprovalData,
    PriceChangeData,
    PromotionApprovalData,
    parse_payload,
)

_ZERO = Decimal("0")


class ThresholdLookup(Protocol):
    def get(self, request_type: ApprovalRequestType) -> ApprovalThreshold | None: ...


def _within(value: Decimal, ceiling: Decimal | None, label: str) -> AutoApprovalEvaluation:
    limit = ceiling if ceiling is not None else _ZERO
    ok = value <= limit
    return AutoApprovalEvaluation(
        auto_approved=ok,
        ceiling=limit,
        evaluated_value=value,
        reason=f"{label} {value} {'<=' if ok else '>'} {limit}",
    )


def _evaluate_conditions(
    payload: ApprovalPayload,
    conditions: AutoApproveConditions,
) -> AutoApprovalEvaluation:
    if isinstance(payload, CouponApprovalData):
        if payload.is_percentage:
            return _within(
                payload.value, conditions.max_discount_percentage, "discount percentage"
            )
        return _within(payload.value, conditions.max_fixed_amount, "fixed amount")

    if isinstance(payload, PriceChangeData):
        return _within(
            abs(payload.change_percentage),
            conditions.max_price_change_percentage,
            "price change percentage",
        )

    if isinstance(payload, (BulkDiscountData, PromotionApprovalData)):
        return _within(
            payload.discount_percentage,
            conditions.max_discount_percentage,
            "discount percentage",
        )

    return AutoApprovalEvaluation(
        auto_approved=False,
        reason=f"no auto-approval rule for {payload.request_type.value}",
    )


@traced_engine("auto_approval", "1.0", fingerprint_fields=("request_type", "data"))
def evaluate_auto_approval(
    registry: ThresholdLookup,
    request_type: ApprovalRequestType | str,
    data: ApprovalPayload | Mapping[str, Any],
) -> AutoApprovalEvaluation:
    """Evaluate ``data`` against the registry entry for ``request_type``."""
    payload = parse_payload(request_type, data)
    request_type = payload.request_type

    if request_type is ApprovalRequestType.FLASH_SALE:
        return AutoApprovalEvaluation(
            auto_approved=False, reason="flash sales always require review"
        )

    threshold = registry.get(request_type)
    if threshold is None:
        return AutoApprovalEvaluation(
            auto_approved=False, reason=f"no threshold configured for {request_type.value}"
        )

    if threshold.auto_approve_conditions is None:
        return AutoApprovalEvaluation(
            auto_approved=False,
            reason=f"no auto-approve conditions for {request_type.value}",
        )

    return _evaluate_conditions(payload, threshold.auto_approve_conditions)


def can_auto_approve(
    registry: ThresholdLookup,
    request_type: ApprovalRequestType | str,
    data: ApprovalPayload | Mapping[str, Any],
) -> bool:
    """True if a request with this payload would approve itself on creation."""
    return evaluate_auto_approval(registry, request_type, data).auto_approved
