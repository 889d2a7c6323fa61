"""Kernel services: the only writers of approval request status."""

from approval_kernel.services.approval_service import ApprovalWorkflowService

__all__ = ["ApprovalWorkflowService"]
