"""
Pure domain layer.

Data transfer objects and lifecycle rules with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (beyond the Clock abstraction)
- I/O

All domain objects are immutable and deterministic.
"""

from approval_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    REVIEWER_ROLES,
    TERMINAL_APPROVAL_STATUSES,
    ApprovalPriority,
    ApprovalRequest,
    ApprovalRequestType,
    ApprovalStats,
    ApprovalStatus,
    ApprovalThreshold,
    ApprovalUser,
    AutoApprovalEvaluation,
    AutoApproveConditions,
    UserRole,
    is_valid_transition,
)
from approval_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from approval_kernel.domain.payloads import (
    PAYLOAD_TYPES,
    ApprovalPayload,
    BulkDiscountData,
    CouponApprovalData,
    FlashSaleData,
    PriceChangeData,
    PromotionApprovalData,
    parse_payload,
)

__all__ = [
    "APPROVAL_TRANSITIONS",
    "PAYLOAD_TYPES",
    "REVIEWER_ROLES",
    "TERMINAL_APPROVAL_STATUSES",
    "ApprovalPayload",
    "ApprovalPriority",
    "ApprovalRequest",
    "ApprovalRequestType",
    "ApprovalStats",
    "ApprovalStatus",
    "ApprovalThreshold",
    "ApprovalUser",
    "AutoApprovalEvaluation",
    "AutoApproveConditions",
    "BulkDiscountData",
    "Clock",
    "CouponApprovalData",
    "DeterministicClock",
    "FlashSaleData",
    "PriceChangeData",
    "PromotionApprovalData",
    "SystemClock",
    "UserRole",
    "is_valid_transition",
    "parse_payload",
]
