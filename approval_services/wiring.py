"""
approval_services.wiring -- Default assembly of the workflow service.

One place that turns the outside collaborators (auth context, coupon
catalog, delivery channel, user directory) into a ready
``ApprovalWorkflowService`` with the standard handlers registered and the
active threshold registry loaded.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from approval_config import ThresholdRegistry, get_threshold_registry
from approval_kernel.domain.clock import Clock
from approval_kernel.domain.collaborators import (
    CouponGateway,
    IdentityProvider,
    Notifier,
    ReviewerDirectory,
)
from approval_kernel.services.approval_service import ApprovalWorkflowService
from approval_services.action_dispatcher import ActionDispatcher, CouponCreationHandler
from approval_services.notification_dispatcher import NotificationDispatcher


def build_action_dispatcher(coupon_gateway: CouponGateway) -> ActionDispatcher:
    dispatcher = ActionDispatcher()
    dispatcher.register(CouponCreationHandler(coupon_gateway))
    return dispatcher


def build_workflow_service(
    session: Session,
    *,
    identity: IdentityProvider,
    coupon_gateway: CouponGateway,
    notifier: Notifier,
    directory: ReviewerDirectory,
    registry: ThresholdRegistry | None = None,
    clock: Clock | None = None,
    auto_commit: bool = True,
) -> ApprovalWorkflowService:
    """Workflow service with the standard executor and notification dispatcher."""
    return ApprovalWorkflowService(
        session=session,
        registry=registry if registry is not None else get_threshold_registry(),
        identity=identity,
        executor=build_action_dispatcher(coupon_gateway),
        notifier=NotificationDispatcher(notifier, directory),
        clock=clock,
        auto_commit=auto_commit,
    )
