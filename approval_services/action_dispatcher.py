"""
approval_services.action_dispatcher -- Action Executor implementation.

Responsibility:
    Performs the business effect of an approved request by routing its
    payload to the handler registered for its type.  The workflow service
    sees a single ``ActionExecutor``; new effects are added by registering
    handlers, not by editing a switch on request type.

Architecture position:
    Services -- imperative shell around the catalog collaborators.
    Called by ``ApprovalWorkflowService`` after an approval is durable.

Invariants enforced:
    - One handler per request type; the handler's declared type must match
      its registration (asserted at register time).
    - Unregistered types are a logged no-op: approving them records the
      decision without any catalog change.

Failure modes:
    - ValueError from ``register`` for a duplicate registration.
    - ActionExecutionError wrapping any handler exception (``cause`` set).
"""

from __future__ import annotations

from typing import Any, Protocol

from approval_kernel.domain.approval import ApprovalRequestType
from approval_kernel.domain.collaborators import CouponGateway
from approval_kernel.domain.payloads import ApprovalPayload, CouponApprovalData
from approval_kernel.exceptions import ActionExecutionError
from approval_kernel.logging_config import get_logger

logger = get_logger("services.action_dispatcher")


class ActionHandler(Protocol):
    """Performs the effect for one request type."""

    request_type: ApprovalRequestType

    def handle(self, data: ApprovalPayload) -> None: ...


class CouponCreationHandler:
    """Creates the coupon described by an approved COUPON_CREATION request."""

    request_type = ApprovalRequestType.COUPON_CREATION

    def __init__(self, gateway: CouponGateway) -> None:
        self._gateway = gateway

    @staticmethod
    def build_coupon(data: CouponApprovalData) -> dict[str, Any]:
        """Coupon record as the catalog stores it: new, active, unused."""
        return {
            "code": data.code,
            "type": data.discount_type,
            "value": data.value,
            "description": data.description,
            "usageLimit": data.usage_limit,
            "usageCount": 0,
            "isActive": True,
            "startDate": data.start_date,
            "endDate": data.end_date,
            "minPurchaseAmount": data.min_purchase_amount,
            "applicableProducts": (
                list(data.applicable_products) if data.applicable_products else None
            ),
            "applicableCategories": (
                list(data.applicable_categories) if data.applicable_categories else None
            ),
        }

    def handle(self, data: ApprovalPayload) -> None:
        if not isinstance(data, CouponApprovalData):
            raise TypeError(f"expected CouponApprovalData, got {type(data).__name__}")
        self._gateway.create_coupon(self.build_coupon(data))
        logger.info("coupon_created", extra={"coupon_code": data.code})


class ActionDispatcher:
    """Routes approved payloads to their registered handlers.

    Usage:
        dispatcher = ActionDispatcher()
        dispatcher.register(CouponCreationHandler(gateway))
        dispatcher.execute(ApprovalRequestType.COUPON_CREATION, payload)
    """

    def __init__(self) -> None:
        self._handlers: dict[ApprovalRequestType, ActionHandler] = {}

    def register(self, handler: ActionHandler) -> None:
        request_type = ApprovalRequestType(handler.request_type)
        if request_type in self._handlers:
            raise ValueError(f"Handler already registered for {request_type.value}")
        self._handlers[request_type] = handler

    def registered_types(self) -> tuple[ApprovalRequestType, ...]:
        return tuple(self._handlers)

    def execute(self, request_type: ApprovalRequestType, data: ApprovalPayload) -> None:
        request_type = ApprovalRequestType(request_type)
        handler = self._handlers.get(request_type)
        if handler is None:
            logger.info(
                "action_not_implemented",
                extra={"request_type": request_type.value},
            )
            return

        try:
            handler.handle(data)
        except Exception as exc:
            raise ActionExecutionError(request_type.value, cause=exc) from exc
