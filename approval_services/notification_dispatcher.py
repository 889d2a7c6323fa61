"""
approval_services.notification_dispatcher -- ApprovalNotifier implementation.

Responsibility:
    Decides who hears about a request event and with what text, then hands
    the message to the delivery ``Notifier``.  Reviewers (SUPER_ADMIN and
    MANAGER) hear about new and auto-approved requests; the requester hears
    about manual decisions.

Architecture position:
    Services -- imperative shell.  Text comes from the pure
    ``approval_engines.messages``; recipients come from the
    ``ReviewerDirectory``.

Invariants enforced:
    - Best effort: no exception escapes.  Directory and delivery failures
      are logged at WARNING and the triggering transition stands.
    - Auto-approvals notify reviewers only, never the requester.
"""

from __future__ import annotations

from collections.abc import Sequence

from approval_engines import messages
from approval_kernel.domain.approval import REVIEWER_ROLES, ApprovalRequest, UserRole
from approval_kernel.domain.collaborators import (
    NotificationKind,
    Notifier,
    ReviewerDirectory,
)
from approval_kernel.logging_config import get_logger

logger = get_logger("services.notification_dispatcher")


class NotificationDispatcher:
    """Composes and delivers approval notifications."""

    def __init__(
        self,
        notifier: Notifier,
        directory: ReviewerDirectory,
        reviewer_roles: Sequence[UserRole] = REVIEWER_ROLES,
    ) -> None:
        self._notifier = notifier
        self._directory = directory
        self._reviewer_roles = tuple(reviewer_roles)

    def notify_new_request(self, request: ApprovalRequest) -> None:
        self._notify_reviewers(
            NotificationKind.NEW_REQUEST,
            request,
            messages.new_request_title(request),
            messages.new_request_message(request),
        )

    def notify_auto_approved(self, request: ApprovalRequest) -> None:
        self._notify_reviewers(
            NotificationKind.AUTO_APPROVED,
            request,
            messages.auto_approved_title(request),
            messages.auto_approved_message(request),
        )

    def notify_requester(self, request: ApprovalRequest, approved: bool) -> None:
        kind = (
            NotificationKind.REQUEST_APPROVED if approved
            else NotificationKind.REQUEST_REJECTED
        )
        self._deliver(
            kind,
            [request.requested_by.uid],
            request,
            messages.decision_title(request, approved),
            messages.decision_message(request, approved),
        )

    def _notify_reviewers(
        self,
        kind: NotificationKind,
        request: ApprovalRequest,
        title: str,
        message: str,
    ) -> None:
        try:
            reviewers = self._directory.get_users_by_role(self._reviewer_roles)
        except Exception:
            logger.warning(
                "reviewer_lookup_failed",
                extra={"request_id": str(request.request_id), "kind": kind.value},
                exc_info=True,
            )
            return

        recipients = [user.uid for user in reviewers]
        if not recipients:
            logger.warning(
                "no_reviewers_to_notify",
                extra={"request_id": str(request.request_id), "kind": kind.value},
            )
            return

        self._deliver(kind, recipients, request, title, message)

    def _deliver(
        self,
        kind: NotificationKind,
        recipients: list[str],
        request: ApprovalRequest,
        title: str,
        message: str,
    ) -> None:
        try:
            self._notifier.notify(kind, recipients, request.request_id, title, message)
        except Exception:
            logger.warning(
                "notification_failed",
                extra={
                    "request_id": str(request.request_id),
                    "kind": kind.value,
                    "recipient_count": len(recipients),
                },
                exc_info=True,
            )
            return

        logger.debug(
            "notification_sent",
            extra={
                "request_id": str(request.request_id),
                "kind": kind.value,
                "recipient_count": len(recipients),
            },
        )
