"""Read-only query layer over approval requests."""

from approval_kernel.selectors.approval_selector import (
    ApprovalFilters,
    ApprovalRequestSelector,
    PageMeta,
    PageResult,
    Pagination,
    Sorting,
    effective_status_clause,
)
from approval_kernel.selectors.base import BaseSelector

__all__ = [
    "ApprovalFilters",
    "ApprovalRequestSelector",
    "BaseSelector",
    "PageMeta",
    "PageResult",
    "Pagination",
    "Sorting",
    "effective_status_clause",
]
