"""
Ports to the collaborators the workflow engine depends on but does not
implement: the auth context, the catalog/coupon mutation that runs on
approval, the user directory and outbound notification delivery.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from approval_kernel.domain.approval import (
    ApprovalRequest,
    ApprovalRequestType,
    ApprovalUser,
    UserRole,
)
from approval_kernel.domain.payloads import ApprovalPayload


class NotificationKind(str, Enum):
    NEW_REQUEST = "NEW_REQUEST"
    AUTO_APPROVED = "AUTO_APPROVED"
    REQUEST_APPROVED = "REQUEST_APPROVED"
    REQUEST_REJECTED = "REQUEST_REJECTED"


class IdentityProvider(Protocol):
    """External auth context."""

    def current_user(self) -> ApprovalUser | None:
        """Return the acting user, or None when nobody is signed in."""
        ...


class ActionExecutor(Protocol):
    """Performs the real side effect of an approved request."""

    def execute(self, request_type: ApprovalRequestType, data: ApprovalPayload) -> None:
        """Run the action; raise on failure."""
        ...


class Notifier(Protocol):
    """Outbound message delivery (in-app, email ...)."""

    def notify(
        self,
        kind: NotificationKind,
        recipients: Sequence[str],
        request_id: UUID,
        title: str,
        message: str,
    ) -> None:
        ...


class ReviewerDirectory(Protocol):
    """User lookup by role."""

    def get_users_by_role(self, roles: Sequence[UserRole]) -> list[ApprovalUser]:
        ...


class CouponGateway(Protocol):
    """Catalog side: persists a coupon record."""

    def create_coupon(self, coupon: dict[str, Any]) -> None:
        ...


class ApprovalNotifier(Protocol):
    """Engine-facing notification port.

    Implementations are best-effort: they must not raise.
    """

    def notify_new_request(self, request: ApprovalRequest) -> None:
        ...

    def notify_auto_approved(self, request: ApprovalRequest) -> None:
        ...

    def notify_requester(self, request: ApprovalRequest, approved: bool) -> None:
        ...
