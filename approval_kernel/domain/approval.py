"""
Approval domain types (``approval_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the approval workflow engine.  Defines the
request lifecycle state machine, the denormalized user snapshot, the
request record, threshold configuration records, and dashboard stats.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* Lifecycle state machine -- ``APPROVAL_TRANSITIONS`` defines the only
  valid status transitions.  PENDING reaches exactly one terminal state;
  terminal states have no outgoing edges.
* Passive expiration -- a PENDING request whose ``expires_at`` has passed
  is EXPIRED for every reader (``effective_status``), whatever the
  stored status says.
* ``priority`` and ``auto_approved`` are fixed at creation; the record is
  frozen and only the workflow service produces new versions of it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from approval_kernel.domain.payloads import ApprovalPayload


# =========================================================================
# Enumerations
# =========================================================================


class ApprovalRequestType(str, Enum):
    """Closed set of business actions that go through approval."""

    COUPON_CREATION = "COUPON_CREATION"
    PROMOTION_CREATION = "PROMOTION_CREATION"
    PRICE_CHANGE = "PRICE_CHANGE"
    BULK_DISCOUNT = "BULK_DISCOUNT"
    FLASH_SALE = "FLASH_SALE"


class ApprovalStatus(str, Enum):
    """Approval request lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class ApprovalPriority(str, Enum):
    """Urgency tier, computed once at creation."""

    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class UserRole(str, Enum):
    """Console roles carried on user snapshots."""

    SUPER_ADMIN = "SUPER_ADMIN"
    MANAGER = "MANAGER"
    OPERATIONS = "OPERATIONS"
    STAFF = "STAFF"


REVIEWER_ROLES: tuple[UserRole, ...] = (UserRole.SUPER_ADMIN, UserRole.MANAGER)


# =========================================================================
# Lifecycle
# =========================================================================


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.CANCELLED,
        ApprovalStatus.EXPIRED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
    ApprovalStatus.CANCELLED: frozenset(),
    ApprovalStatus.EXPIRED: frozenset(),
}

TERMINAL_APPROVAL_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
    ApprovalStatus.CANCELLED,
    ApprovalStatus.EXPIRED,
})


def is_valid_transition(current: ApprovalStatus, target: ApprovalStatus) -> bool:
    """True if ``current -> target`` is an edge of the lifecycle."""
    return target in APPROVAL_TRANSITIONS.get(current, frozenset())


# =========================================================================
# User snapshot
# =========================================================================


@dataclass(frozen=True)
class ApprovalUser:
    """Denormalized copy of the acting user at the time of the action.

    Stored inside the request, not referenced, so audit entries remain
    readable after the account changes or is deleted.
    """

    uid: str
    name: str
    email: str
    role: UserRole | None = None

    @classmethod
    def from_account(
        cls,
        uid: str,
        display_name: str | None = None,
        email: str | None = None,
        role: UserRole | str | None = None,
    ) -> ApprovalUser:
        """Snapshot an account; name falls back to email, then 'Unknown'."""
        return cls(
            uid=uid,
            name=display_name or email or "Unknown",
            email=email or "",
            role=UserRole(role) if role else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"uid": self.uid, "name": self.name, "email": self.email}
        if self.role is not None:
            out["role"] = self.role.value
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ApprovalUser:
        role = data.get("role")
        return cls(
            uid=data["uid"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            role=UserRole(role) if role else None,
        )


# =========================================================================
# Request record
# =========================================================================


@dataclass(frozen=True)
class ApprovalRequest:
    """Immutable snapshot of an approval request.

    ``reviewed_by`` / ``reviewed_at`` / ``rejection_reason`` are present
    only when a human decided the request.  ``status`` is the stored
    status unless the record was produced by a reader, in which case it
    is the effective status (see ``with_effective_status``).
    """

    request_id: UUID
    request_type: ApprovalRequestType
    status: ApprovalStatus
    requested_by: ApprovalUser
    requested_at: datetime
    data: ApprovalPayload
    priority: ApprovalPriority
    auto_approved: bool = False
    expires_at: datetime | None = None
    notes: str | None = None
    reviewed_by: ApprovalUser | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    reviewer_notes: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPROVAL_STATUSES

    def is_expired(self, as_of: datetime) -> bool:
        """PENDING and past its deadline (inclusive)."""
        return (
            self.status is ApprovalStatus.PENDING
            and self.expires_at is not None
            and self.expires_at <= as_of
        )

    def effective_status(self, as_of: datetime) -> ApprovalStatus:
        if self.is_expired(as_of):
            return ApprovalStatus.EXPIRED
        return self.status

    def with_effective_status(self, as_of: datetime) -> ApprovalRequest:
        """Copy reporting EXPIRED for a passively expired request."""
        if self.is_expired(as_of):
            return replace(self, status=ApprovalStatus.EXPIRED)
        return self


# =========================================================================
# Threshold configuration records
# =========================================================================


@dataclass(frozen=True)
class AutoApproveConditions:
    """Numeric ceilings under which a request approves itself."""

    max_discount_percentage: Decimal | None = None
    max_fixed_amount: Decimal | None = None
    max_price_change_percentage: Decimal | None = None


@dataclass(frozen=True)
class ApprovalThreshold:
    """Per-type approval policy.

    ``auto_approve_conditions`` of None means every request of the type
    waits for review.
    """

    request_type: ApprovalRequestType
    auto_approve_conditions: AutoApproveConditions | None = None
    requires_approval: bool = True
    notify_on_auto_approve: bool = False
    expiration_hours: int | None = None


@dataclass(frozen=True)
class AutoApprovalEvaluation:
    """Outcome of checking a payload against its threshold."""

    auto_approved: bool
    ceiling: Decimal | None = None
    evaluated_value: Decimal | None = None
    reason: str = ""


# =========================================================================
# Stats
# =========================================================================


@dataclass(frozen=True)
class ApprovalStats:
    """Dashboard counters over a set of requests (effective statuses)."""

    total_requests: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    cancelled: int = 0
    expired: int = 0
    auto_approved: int = 0
    average_approval_time_hours: float = 0.0
