"""
approval_kernel.services.approval_service -- Approval workflow engine.

Responsibility:
    Owns every write of an approval request's status: creation (with
    auto-approval), manual approve / reject, requester cancel, and the
    optional expiry sweep.  Runs the Action Executor and the notifier
    after the status it depends on is durable.  Read operations delegate
    to ``ApprovalRequestSelector``.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/, db/
    and the pure ``approval_engines``.  Collaborators (identity, executor,
    notifier) arrive as constructor arguments.

Invariants enforced:
    - Compare-and-swap: every transition out of PENDING is one conditional
      UPDATE keyed on ``status = 'PENDING'`` and an unexpired deadline.
      When two decisions race exactly one row update succeeds; the loser
      re-reads and raises InvalidStateError.
    - Passive expiration: an overdue PENDING request cannot be approved,
      rejected or cancelled, and reads report it as EXPIRED.
    - Persist before act: the Action Executor runs only after the
      APPROVED status is committed (or flushed, with auto_commit=False).
      Its failure never reverts that status.
    - Review metadata is written only by approve / reject.

Failure modes:
    - UnauthenticatedError when the identity provider returns no user.
    - InvalidArgumentError for a blank rejection reason, an unknown type
      or a malformed payload.
    - ApprovalNotFoundError for an unknown request id.
    - ForbiddenError when someone other than the requester cancels.
    - InvalidStateError when the request is not (effectively) PENDING.
    - ActionExecutionError after a committed approval whose action failed;
      ``.request`` carries the committed record.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from approval_engines.auto_approval import (
    ThresholdLookup,
    can_auto_approve,
    evaluate_auto_approval,
)
from approval_engines.priority import calculate_priority
from approval_kernel.db.types import as_utc
from approval_kernel.domain.approval import (
    ApprovalPriority,
    ApprovalRequest,
    ApprovalRequestType,
    ApprovalStats,
    ApprovalStatus,
    ApprovalUser,
)
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.collaborators import (
    ActionExecutor,
    ApprovalNotifier,
    IdentityProvider,
)
from approval_kernel.domain.payloads import ApprovalPayload, parse_payload
from approval_kernel.exceptions import (
    ActionExecutionError,
    ApprovalNotFoundError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    UnauthenticatedError,
)
from approval_kernel.logging_config import LogContext, get_logger
from approval_kernel.models.approval import ApprovalRequestModel
from approval_kernel.selectors.approval_selector import (
    ApprovalFilters,
    ApprovalRequestSelector,
    PageResult,
    Pagination,
    Sorting,
)

logger = get_logger("services.approval_service")

_M = ApprovalRequestModel


def _as_request_id(request_id: UUID | str) -> UUID:
    if isinstance(request_id, UUID):
        return request_id
    try:
        return UUID(str(request_id))
    except ValueError:
        raise ApprovalNotFoundError(str(request_id)) from None


def _as_request_type(request_type: ApprovalRequestType | str) -> ApprovalRequestType:
    try:
        return ApprovalRequestType(request_type)
    except ValueError:
        raise InvalidArgumentError(
            "type", f"unknown request type {request_type!r}"
        ) from None


def _as_priority(priority: ApprovalPriority | str) -> ApprovalPriority:
    try:
        return ApprovalPriority(priority)
    except ValueError:
        raise InvalidArgumentError(
            "priority", f"unknown priority {priority!r}"
        ) from None


def _utc_bound(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return as_utc(value)


class ApprovalWorkflowService:
    """Approval request lifecycle: create, decide, cancel, expire, query."""

    def __init__(
        self,
        session: Session,
        registry: ThresholdLookup,
        identity: IdentityProvider,
        executor: ActionExecutor,
        notifier: ApprovalNotifier,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ) -> None:
        self._session = session
        self._registry = registry
        self._identity = identity
        self._executor = executor
        self._notifier = notifier
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._selector = ApprovalRequestSelector(session)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(
        self,
        request_type: ApprovalRequestType | str,
        data: ApprovalPayload | Mapping[str, Any],
        notes: str | None = None,
        priority: ApprovalPriority | str | None = None,
    ) -> ApprovalRequest:
        """Submit a new request; approve it immediately if within thresholds."""
        requester = self._require_user("create")
        request_type = _as_request_type(request_type)
        payload = parse_payload(request_type, data)

        evaluation = evaluate_auto_approval(self._registry, request_type, payload)
        threshold = self._registry.get(request_type)

        now = self._clock.now()
        expires_at = None
        if threshold is not None and threshold.expiration_hours:
            expires_at = now + timedelta(hours=threshold.expiration_hours)

        record = ApprovalRequest(
            request_id=uuid4(),
            request_type=request_type,
            status=(
                ApprovalStatus.APPROVED if evaluation.auto_approved
                else ApprovalStatus.PENDING
            ),
            requested_by=requester,
            requested_at=now,
            data=payload,
            priority=(
                _as_priority(priority) if priority is not None
                else calculate_priority(request_type, payload)
            ),
            auto_approved=evaluation.auto_approved,
            expires_at=expires_at,
            notes=notes,
        )

        with LogContext.bind(
            request_id=record.request_id,
            actor_id=requester.uid,
            request_type=request_type.value,
        ):
            self._session.add(ApprovalRequestModel.from_dto(record))
            self._end_unit()

            logger.info(
                "approval_request_created",
                extra={
                    "status": record.status.value,
                    "priority": record.priority.value,
                    "auto_approved": record.auto_approved,
                    "expires_at": record.expires_at,
                    "evaluation": evaluation.reason,
                },
            )

            if not record.auto_approved:
                self._notify(self._notifier.notify_new_request, record)
                return record

            logger.info(
                "approval_auto_approved",
                extra={
                    "ceiling": evaluation.ceiling,
                    "evaluated_value": evaluation.evaluated_value,
                },
            )
            failure = self._execute(record)
            if threshold is not None and threshold.notify_on_auto_approve:
                self._notify(self._notifier.notify_auto_approved, record)
            if failure is not None:
                raise failure
            return record

    def can_auto_approve(
        self,
        request_type: ApprovalRequestType | str,
        data: ApprovalPayload | Mapping[str, Any],
    ) -> bool:
        """Preview whether ``data`` would be auto-approved, without creating it."""
        return can_auto_approve(self._registry, _as_request_type(request_type), data)

    def approve(
        self,
        request_id: UUID | str,
        reviewer_notes: str | None = None,
    ) -> ApprovalRequest:
        """Approve a pending request, then run its action and tell the requester."""
        reviewer = self._require_user("approve")
        request_id = _as_request_id(request_id)

        with LogContext.bind(request_id=request_id, actor_id=reviewer.uid):
            now = self._clock.now()
            record = self._transition(
                request_id,
                ApprovalStatus.APPROVED,
                now,
                reviewed_by=reviewer.to_dict(),
                reviewed_at=now,
                reviewer_notes=reviewer_notes,
            )
            self._log_decision(record, reviewer)

            failure = self._execute(record)
            self._notify(self._notifier.notify_requester, record, True)
            if failure is not None:
                raise failure
            return record

    def reject(self, request_id: UUID | str, reason: str) -> ApprovalRequest:
        """Reject a pending request with a mandatory reason."""
        reviewer = self._require_user("reject")
        if reason is None or not str(reason).strip():
            raise InvalidArgumentError("reason", "a rejection reason is required")
        request_id = _as_request_id(request_id)

        with LogContext.bind(request_id=request_id, actor_id=reviewer.uid):
            now = self._clock.now()
            record = self._transition(
                request_id,
                ApprovalStatus.REJECTED,
                now,
                reviewed_by=reviewer.to_dict(),
                reviewed_at=now,
                rejection_reason=reason,
            )
            self._log_decision(record, reviewer)
            self._notify(self._notifier.notify_requester, record, False)
            return record

    def cancel(self, request_id: UUID | str) -> ApprovalRequest:
        """Withdraw a pending request.  Only its requester may do so."""
        actor = self._require_user("cancel")
        request_id = _as_request_id(request_id)

        with LogContext.bind(request_id=request_id, actor_id=actor.uid):
            now = self._clock.now()
            current = self._selector.get(request_id, now)
            if current is None:
                raise ApprovalNotFoundError(str(request_id))
            if current.requested_by.uid != actor.uid:
                logger.warning(
                    "approval_cancel_forbidden",
                    extra={"requester_uid": current.requested_by.uid},
                )
                raise ForbiddenError(
                    str(request_id), actor.uid, "only the requester may cancel"
                )
            if current.status is not ApprovalStatus.PENDING:
                raise InvalidStateError(
                    str(request_id),
                    current.status.value,
                    ApprovalStatus.CANCELLED.value,
                )

            record = self._transition(request_id, ApprovalStatus.CANCELLED, now)
            logger.info("approval_request_cancelled")
            return record

    def expire_stale_requests(self, as_of: datetime | None = None) -> list[UUID]:
        """Persist EXPIRED for every overdue PENDING request.

        Reads already report these as EXPIRED; the sweep only brings stored
        state in line.  Safe to run repeatedly or concurrently with
        decisions.
        """
        as_of = as_utc(as_of) if as_of is not None else self._clock.now()
        expired: list[UUID] = []

        for overdue in self._selector.list_overdue(as_of):
            result = self._session.execute(
                update(_M)
                .where(
                    _M.request_id == overdue.request_id,
                    _M.status == ApprovalStatus.PENDING.value,
                    _M.expires_at <= as_of,
                )
                .values(status=ApprovalStatus.EXPIRED.value)
                .execution_options(synchronize_session="fetch")
            )
            if result.rowcount == 1:
                expired.append(overdue.request_id)

        self._end_unit()

        logger.info(
            "approval_requests_expired",
            extra={"as_of": as_of, "count": len(expired)},
        )
        return expired

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, request_id: UUID | str) -> ApprovalRequest:
        request_id = _as_request_id(request_id)
        record = self._selector.get(request_id, self._clock.now())
        if record is None:
            raise ApprovalNotFoundError(str(request_id))
        return record

    def list_requests(
        self,
        filters: ApprovalFilters | None = None,
        paging: Pagination | None = None,
        sorting: Sorting | None = None,
    ) -> PageResult:
        return self._selector.list(self._clock.now(), filters, paging, sorting)

    def get_pending_requests(self) -> list[ApprovalRequest]:
        return self.get_requests_by_status(ApprovalStatus.PENDING)

    def get_requests_by_status(
        self, status: ApprovalStatus | str,
    ) -> list[ApprovalRequest]:
        return self._selector.list_all(
            self._clock.now(), ApprovalFilters(status=ApprovalStatus(status)),
        )

    def get_user_requests(self, uid: str) -> list[ApprovalRequest]:
        return self._selector.list_all(
            self._clock.now(), ApprovalFilters(requested_by=uid),
        )

    def get_requests_by_date_range(
        self,
        start: datetime,
        end: datetime,
        status: ApprovalStatus | str | None = None,
    ) -> list[ApprovalRequest]:
        """Requests with ``start <= requested_at <= end``.  Naive bounds are UTC."""
        start, end = _utc_bound(start), _utc_bound(end)
        if start > end:
            raise InvalidArgumentError("start", "must not be after end")
        return self._selector.list_all(
            self._clock.now(),
            ApprovalFilters(
                status=ApprovalStatus(status) if status is not None else None,
                start=start,
                end=end,
            ),
        )

    def get_stats(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> ApprovalStats:
        return self._selector.stats(
            self._clock.now(),
            start=_utc_bound(start) if start is not None else None,
            end=_utc_bound(end) if end is not None else None,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_user(self, operation: str) -> ApprovalUser:
        user = self._identity.current_user()
        if user is None:
            logger.warning("approval_unauthenticated", extra={"operation": operation})
            raise UnauthenticatedError(operation)
        return user

    def _end_unit(self) -> None:
        if self._auto_commit:
            self._session.commit()
        else:
            self._session.flush()

    def _transition(
        self,
        request_id: UUID,
        target: ApprovalStatus,
        now: datetime,
        **values: Any,
    ) -> ApprovalRequest:
        """Conditional PENDING -> ``target`` update; raise if it did not apply."""
        result = self._session.execute(
            update(_M)
            .where(
                _M.request_id == request_id,
                _M.status == ApprovalStatus.PENDING.value,
                or_(_M.expires_at.is_(None), _M.expires_at > now),
            )
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            if self._auto_commit:
                # releases the write lock taken by the no-op UPDATE
                self._session.rollback()
            current = self._selector.get(request_id, now)
            if current is None:
                raise ApprovalNotFoundError(str(request_id))
            logger.warning(
                "approval_transition_conflict",
                extra={
                    "current_status": current.status.value,
                    "attempted_status": target.value,
                },
            )
            raise InvalidStateError(str(request_id), current.status.value, target.value)

        self._end_unit()

        model = self._session.execute(
            select(_M)
            .where(_M.request_id == request_id)
            .execution_options(populate_existing=True)
        ).scalar_one()
        return model.to_dto()

    def _log_decision(self, record: ApprovalRequest, reviewer: ApprovalUser) -> None:
        logger.info(
            "approval_decision_recorded",
            extra={
                "status": record.status.value,
                "request_type": record.request_type.value,
                "requester_uid": record.requested_by.uid,
                "reviewer_uid": reviewer.uid,
            },
        )

    def _execute(self, record: ApprovalRequest) -> ActionExecutionError | None:
        """Run the action for an approved record; return the failure, if any."""
        try:
            self._executor.execute(record.request_type, record.data)
        except Exception as exc:
            cause = exc.cause if isinstance(exc, ActionExecutionError) and exc.cause else exc
            logger.error(
                "action_execution_failed",
                extra={
                    "request_type": record.request_type.value,
                    "error": str(cause),
                },
                exc_info=True,
            )
            failure = ActionExecutionError(
                record.request_type.value,
                cause=cause,
                request_id=str(record.request_id),
                request=record,
            )
            failure.__cause__ = exc
            return failure

        logger.info(
            "action_executed",
            extra={"request_type": record.request_type.value},
        )
        return None

    def _notify(self, send: Callable[..., None], *args: Any) -> None:
        try:
            send(*args)
        except Exception:
            logger.warning(
                "notification_failed",
                extra={"notifier": getattr(send, "__qualname__", repr(send))},
                exc_info=True,
            )
