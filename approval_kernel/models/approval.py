"""
Module: approval_kernel.models.approval
Responsibility: ORM persistence for approval requests.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Lifecycle: DB check constraint limits status and priority values;
      the workflow service enforces transition rules with conditional
      updates; an ORM listener blocks any flush against a request whose
      stored status is already terminal.
    - Denormalized snapshots: requested_by / reviewed_by are JSON copies
      of the acting user, not foreign keys.  requested_by_uid duplicates
      the snapshot uid so "my requests" can use an index.
    - Covering indexes for the listing surface (status, requester, date
      range) and for the expiry sweep.

Failure modes:
    - ImmutabilityViolationError on ORM flush of a terminal request.
    - IntegrityError on an out-of-range status or priority value.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Index,
    String,
    Text,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base
from approval_kernel.db.types import UTCDateTime, UUIDString
from approval_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from approval_kernel.domain.approval import ApprovalRequest


_STATUS_VALUES = ("PENDING", "APPROVED", "REJECTED", "CANCELLED", "EXPIRED")
_TERMINAL_VALUES = frozenset(_STATUS_VALUES[1:])
_PRIORITY_VALUES = ("LOW", "NORMAL", "HIGH", "URGENT")


def _in_list(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class ApprovalRequestModel(Base):
    """Persistent approval request.

    Contract:
        Status moves PENDING -> terminal exactly once, via the workflow
        service's conditional UPDATE.  Terminal rows are never modified.
    """

    __tablename__ = "approval_requests"

    __table_args__ = (
        CheckConstraint(
            _in_list("status", _STATUS_VALUES),
            name="ck_approval_requests_valid_status",
        ),
        CheckConstraint(
            _in_list("priority", _PRIORITY_VALUES),
            name="ck_approval_requests_valid_priority",
        ),
        Index("ix_approval_requests_status_requested", "status", "requested_at"),
        Index(
            "ix_approval_requests_requester_requested",
            "requested_by_uid", "requested_at",
        ),
        Index("ix_approval_requests_expiry", "status", "expires_at"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    request_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="NORMAL")
    auto_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    requested_by_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    requested_by: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    requested_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    reviewed_by: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalRequest {self.request_id} "
            f"{self.request_type} status={self.status}>"
        )

    def to_dto(self) -> ApprovalRequest:
        """Convert ORM model to frozen domain DTO (stored status)."""
        from approval_kernel.domain.approval import (
            ApprovalPriority,
            ApprovalRequest as ApprovalRequestDTO,
            ApprovalRequestType,
            ApprovalStatus,
            ApprovalUser,
        )
        from approval_kernel.domain.payloads import parse_payload

        request_type = ApprovalRequestType(self.request_type)
        return ApprovalRequestDTO(
            request_id=self.request_id,
            request_type=request_type,
            status=ApprovalStatus(self.status),
            requested_by=ApprovalUser.from_dict(self.requested_by),
            requested_at=self.requested_at,
            data=parse_payload(request_type, self.data),
            priority=ApprovalPriority(self.priority),
            auto_approved=bool(self.auto_approved),
            expires_at=self.expires_at,
            notes=self.notes,
            reviewed_by=(
                ApprovalUser.from_dict(self.reviewed_by)
                if self.reviewed_by else None
            ),
            reviewed_at=self.reviewed_at,
            rejection_reason=self.rejection_reason,
            reviewer_notes=self.reviewer_notes,
        )

    @classmethod
    def from_dto(cls, dto: ApprovalRequest) -> ApprovalRequestModel:
        """Create ORM model from domain DTO."""
        return cls(
            request_id=dto.request_id,
            request_type=dto.request_type.value,
            status=dto.status.value,
            priority=dto.priority.value,
            auto_approved=dto.auto_approved,
            requested_by_uid=dto.requested_by.uid,
            requested_by=dto.requested_by.to_dict(),
            requested_at=dto.requested_at,
            reviewed_by=dto.reviewed_by.to_dict() if dto.reviewed_by else None,
            reviewed_at=dto.reviewed_at,
            rejection_reason=dto.rejection_reason,
            reviewer_notes=dto.reviewer_notes,
            data=dto.data.to_dict(),
            notes=dto.notes,
            expires_at=dto.expires_at,
        )


# =============================================================================
# ORM-level immutability for terminal requests
# =============================================================================


@event.listens_for(ApprovalRequestModel, "before_update")
def prevent_terminal_request_update(mapper, connection, target):
    """Reject ORM flushes against a request that already left PENDING."""
    history = inspect(target).attrs.status.history
    previous = history.deleted or history.unchanged
    if previous and previous[0] in _TERMINAL_VALUES:
        raise ImmutabilityViolationError(
            entity_type="ApprovalRequest",
            entity_id=str(target.request_id),
            reason=f"request is {previous[0]} -- terminal requests cannot be modified",
        )


@event.listens_for(ApprovalRequestModel, "before_delete")
def prevent_request_delete(mapper, connection, target):
    """Approval requests are an audit trail; they are never deleted."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalRequest",
        entity_id=str(target.request_id),
        reason="approval requests cannot be deleted",
    )
