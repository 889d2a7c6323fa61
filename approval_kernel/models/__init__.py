"""SQLAlchemy ORM models for the approval kernel."""

from approval_kernel.models.approval import ApprovalRequestModel

__all__ = ["ApprovalRequestModel"]
