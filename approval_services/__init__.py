"""
approval_services -- runtime collaborators around the workflow engine.

Exports the Action Executor implementation (``ActionDispatcher`` with
per-type handlers), the ``NotificationDispatcher`` and the
``build_workflow_service`` assembly function.
"""

from approval_services.action_dispatcher import (
    ActionDispatcher,
    ActionHandler,
    CouponCreationHandler,
)
from approval_services.notification_dispatcher import NotificationDispatcher
from approval_services.wiring import build_action_dispatcher, build_workflow_service

__all__ = [
    "ActionDispatcher",
    "ActionHandler",
    "CouponCreationHandler",
    "NotificationDispatcher",
    "build_action_dispatcher",
    "build_workflow_service",
]
