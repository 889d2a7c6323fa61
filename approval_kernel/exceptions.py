"""
Typed Exception Hierarchy for the Approval Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the workflow engine (submission forms, review screens, batch
jobs) must react differently to "you are not logged in", "someone else
already decided this request" and "the coupon could not be created".
Parsing messages for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.approve(request_id, "looks fine")
    except InvalidStateError as e:
        flash(f"Request already {e.current_status}")
    except ActionExecutionError as e:
        # Decision is recorded; only the downstream action failed.
        warn(f"Approved, but {e.request_type} action failed: {e.cause}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ApprovalKernelError (base)
    |
    +-- UnauthenticatedError
    +-- ApprovalNotFoundError          (alias: NotFoundError)
    +-- InvalidStateError
    +-- ForbiddenError
    +-- InvalidArgumentError
    +-- ActionExecutionError           (alias: ExecutionError)
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                     | When Raised
-------------------------|--------------------------------------------------
UNAUTHENTICATED          | No acting user resolved from the identity port
APPROVAL_NOT_FOUND       | Unknown request id
INVALID_STATE            | Request not (effectively) PENDING, or lost a race
FORBIDDEN                | Non-requester attempting cancel
INVALID_ARGUMENT         | Blank rejection reason, malformed payload
ACTION_EXECUTION_FAILED  | Action Executor failed AFTER the transition committed
IMMUTABILITY_VIOLATION   | ORM flush attempted on a terminal request

===============================================================================
PROPAGATION
===============================================================================

Validation errors (UNAUTHENTICATED, APPROVAL_NOT_FOUND, INVALID_STATE,
FORBIDDEN, INVALID_ARGUMENT) abort before any write.

ActionExecutionError is raised only after the status transition has been
committed.  It carries the committed ``request`` so the caller can still
show the decision; the request is NOT rolled back.

Notification failures are logged, never raised.
"""

from __future__ import annotations

from typing import Any


class ApprovalKernelError(Exception):
    """
    Base exception for all approval kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "APPROVAL_KERNEL_ERROR"


class UnauthenticatedError(ApprovalKernelError):
    """No acting user could be resolved."""

    code: str = "UNAUTHENTICATED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"User not authenticated (operation: {operation})")


class ApprovalNotFoundError(ApprovalKernelError):
    """Approval request with given ID was not found."""

    code: str = "APPROVAL_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Approval request not found: {request_id}")


class InvalidStateError(ApprovalKernelError):
    """
    Operation is not valid for the request's current (effective) status.

    Raised when the request is terminal, when it has passively expired,
    and when a concurrent decision won the compare-and-swap.
    """

    code: str = "INVALID_STATE"

    def __init__(
        self,
        request_id: str,
        current_status: str,
        attempted_status: str | None = None,
    ):
        self.request_id = request_id
        self.current_status = current_status
        self.attempted_status = attempted_status
        if attempted_status:
            msg = (
                f"Request {request_id} is {current_status}; "
                f"cannot transition to {attempted_status}"
            )
        else:
            msg = f"Request {request_id} is {current_status}; not pending"
        super().__init__(msg)


class ForbiddenError(ApprovalKernelError):
    """Actor is not allowed to perform the operation on this request."""

    code: str = "FORBIDDEN"

    def __init__(self, request_id: str, actor_uid: str, reason: str):
        self.request_id = request_id
        self.actor_uid = actor_uid
        self.reason = reason
        super().__init__(f"Forbidden on request {request_id}: {reason}")


class InvalidArgumentError(ApprovalKernelError):
    """A caller-supplied argument is missing or malformed."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid argument '{field}': {reason}")


class ActionExecutionError(ApprovalKernelError):
    """
    The Action Executor failed.

    When raised by the workflow service, the status transition that
    triggered the action has already been committed; ``request`` holds
    that committed record.  Raised without ``request`` by the action
    dispatcher itself.
    """

    code: str = "ACTION_EXECUTION_FAILED"

    def __init__(
        self,
        request_type: str,
        cause: BaseException | None = None,
        request_id: str | None = None,
        request: Any = None,
    ):
        self.request_type = request_type
        self.cause = cause
        self.request_id = request_id
        self.request = request
        detail = f": {cause}" if cause is not None else ""
        target = f" for request {request_id}" if request_id else ""
        super().__init__(f"Action execution failed for {request_type}{target}{detail}")


class ImmutabilityViolationError(ApprovalKernelError):
    """Attempted to modify a request that already reached a terminal state."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Taxonomy names used by callers of the engine
NotFoundError = ApprovalNotFoundError
ExecutionError = ActionExecutionError
