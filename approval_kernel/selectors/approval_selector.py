"""
Module: approval_kernel.selectors.approval_selector
Responsibility: Read-only query access to approval requests -- lookup by id,
    filtered/sorted/paginated listing, and dashboard stats.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ value types and selectors/base.py.

Invariants enforced:
    - Passive expiration: every query takes an ``as_of`` instant.  A PENDING
      row whose expires_at <= as_of is reported as EXPIRED, is matched by an
      EXPIRED filter and is NOT matched by a PENDING filter.  The rule is
      applied in SQL so that counts and pages agree.
    - Sort columns come from an allow-list; user input never reaches
      ORDER BY directly.
    - Date-range bounds are inclusive on requested_at.

Failure modes:
    - get() returns None for an unknown id (the service maps that to
      ApprovalNotFoundError).
    - InvalidArgumentError for a non-positive limit or negative offset.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from approval_kernel.db.types import as_utc
from approval_kernel.domain.approval import (
    ApprovalRequest,
    ApprovalRequestType,
    ApprovalStats,
    ApprovalStatus,
)
from approval_kernel.exceptions import InvalidArgumentError
from approval_kernel.models.approval import ApprovalRequestModel
from approval_kernel.selectors.base import BaseSelector

SortOrderLiteral = Literal["asc", "desc"]
ApprovalSortFieldLiteral = Literal["requested_at", "status", "priority", "request_type"]


# ---------------------------------------------------------------------------
# Query DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalFilters:
    """All filters are optional and combine with AND."""

    status: ApprovalStatus | None = None
    requested_by: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    request_type: ApprovalRequestType | None = None


@dataclass(frozen=True)
class Pagination:
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class Sorting:
    sort_by: ApprovalSortFieldLiteral = "requested_at"
    sort_order: SortOrderLiteral = "desc"


@dataclass(frozen=True)
class PageMeta:
    total: int
    limit: int
    offset: int
    has_next: bool
    has_previous: bool


@dataclass(frozen=True)
class PageResult:
    data: list[ApprovalRequest]
    meta: PageMeta


_M = ApprovalRequestModel

_PRIORITY_RANK = case(
    {"LOW": 0, "NORMAL": 1, "HIGH": 2, "URGENT": 3},
    value=_M.priority,
    else_=1,
)

_SORT_COLUMNS = {
    "requested_at": _M.requested_at,
    "status": _M.status,
    "priority": _PRIORITY_RANK,
    "request_type": _M.request_type,
}

# Reads reflect committed rows even when the session already holds the object.
_FRESH = {"populate_existing": True}


def _overdue(as_of: datetime) -> ColumnElement[bool]:
    return and_(
        _M.status == ApprovalStatus.PENDING.value,
        _M.expires_at.is_not(None),
        _M.expires_at <= as_of,
    )


def effective_status_clause(status: ApprovalStatus, as_of: datetime) -> ColumnElement[bool]:
    """SQL predicate matching rows whose *effective* status is ``status``."""
    if status is ApprovalStatus.PENDING:
        return and_(
            _M.status == ApprovalStatus.PENDING.value,
            or_(_M.expires_at.is_(None), _M.expires_at > as_of),
        )
    if status is ApprovalStatus.EXPIRED:
        return or_(_M.status == ApprovalStatus.EXPIRED.value, _overdue(as_of))
    return _M.status == status.value


class ApprovalRequestSelector(BaseSelector[ApprovalRequestModel]):
    """
    Selector for approval request queries.

    Guarantees:
        - Read-only.
        - Every returned ApprovalRequest carries its effective status as of
          the supplied instant.
    """

    def get(self, request_id: UUID, as_of: datetime) -> ApprovalRequest | None:
        """Single request by id, or None."""
        model = self.session.execute(
            select(_M)
            .where(_M.request_id == request_id)
            .execution_options(**_FRESH)
        ).scalar_one_or_none()
        if model is None:
            return None
        return model.to_dto().with_effective_status(as_utc(as_of))

    def list(
        self,
        as_of: datetime,
        filters: ApprovalFilters | None = None,
        paging: Pagination | None = None,
        sorting: Sorting | None = None,
    ) -> PageResult:
        """
        Retrieve approval requests matching the given filters.

        All filters are optional.  Pagination is always applied.
        """
        as_of = as_utc(as_of)
        filters = filters or ApprovalFilters()
        paging = paging or Pagination()
        sorting = sorting or Sorting()

        if paging.limit <= 0:
            raise InvalidArgumentError("limit", "must be positive")
        if paging.offset < 0:
            raise InvalidArgumentError("offset", "must not be negative")

        conditions = self._conditions(filters, as_of)

        total = int(self.session.execute(
            select(func.count()).select_from(_M).where(*conditions)
        ).scalar_one())

        sort_col = _SORT_COLUMNS.get(sorting.sort_by, _M.requested_at)
        order = sort_col.asc() if sorting.sort_order == "asc" else sort_col.desc()

        models = self.session.execute(
            select(_M)
            .where(*conditions)
            .order_by(order, _M.requested_at.desc())
            .limit(paging.limit)
            .offset(paging.offset)
            .execution_options(**_FRESH)
        ).scalars().all()

        records = [m.to_dto().with_effective_status(as_of) for m in models]

        meta = PageMeta(
            total=total,
            limit=paging.limit,
            offset=paging.offset,
            has_next=(paging.offset + paging.limit) < total,
            has_previous=paging.offset > 0,
        )
        return PageResult(data=records, meta=meta)

    def list_all(
        self,
        as_of: datetime,
        filters: ApprovalFilters | None = None,
        sorting: Sorting | None = None,
    ) -> list[ApprovalRequest]:
        """Unpaginated variant for the convenience queries."""
        as_of = as_utc(as_of)
        sorting = sorting or Sorting()
        sort_col = _SORT_COLUMNS.get(sorting.sort_by, _M.requested_at)
        order = sort_col.asc() if sorting.sort_order == "asc" else sort_col.desc()
        models = self.session.execute(
            select(_M)
            .where(*self._conditions(filters or ApprovalFilters(), as_of))
            .order_by(order, _M.requested_at.desc())
            .execution_options(**_FRESH)
        ).scalars().all()
        return [m.to_dto().with_effective_status(as_of) for m in models]

    def list_overdue(self, as_of: datetime) -> list[ApprovalRequest]:
        """PENDING rows past their deadline that still store PENDING."""
        as_of = as_utc(as_of)
        models = self.session.execute(
            select(_M)
            .where(_overdue(as_of))
            .order_by(_M.expires_at)
            .execution_options(**_FRESH)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def stats(
        self,
        as_of: datetime,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> ApprovalStats:
        """Counters by effective status plus mean manual approval time."""
        as_of = as_utc(as_of)
        range_conditions = self._conditions(ApprovalFilters(start=start, end=end), as_of)

        effective = case(
            (_overdue(as_of), ApprovalStatus.EXPIRED.value),
            else_=_M.status,
        )
        rows = self.session.execute(
            select(effective.label("eff"), _M.auto_approved, func.count())
            .where(*range_conditions)
            .group_by(effective, _M.auto_approved)
        ).all()

        counts = {s: 0 for s in ApprovalStatus}
        auto_approved = 0
        for eff, is_auto, n in rows:
            counts[ApprovalStatus(eff)] += n
            if is_auto:
                auto_approved += n

        durations = self.session.execute(
            select(_M.requested_at, _M.reviewed_at).where(
                *range_conditions,
                _M.status == ApprovalStatus.APPROVED.value,
                _M.reviewed_at.is_not(None),
            )
        ).all()
        if durations:
            total_hours = sum(
                (reviewed - requested).total_seconds() / 3600
                for requested, reviewed in durations
            )
            average = total_hours / len(durations)
        else:
            average = 0.0

        return ApprovalStats(
            total_requests=sum(counts.values()),
            pending=counts[ApprovalStatus.PENDING],
            approved=counts[ApprovalStatus.APPROVED],
            rejected=counts[ApprovalStatus.REJECTED],
            cancelled=counts[ApprovalStatus.CANCELLED],
            expired=counts[ApprovalStatus.EXPIRED],
            auto_approved=auto_approved,
            average_approval_time_hours=average,
        )

    @staticmethod
    def _conditions(filters: ApprovalFilters, as_of: datetime) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        if filters.status is not None:
            conditions.append(effective_status_clause(ApprovalStatus(filters.status), as_of))
        if filters.requested_by:
            conditions.append(_M.requested_by_uid == filters.requested_by)
        if filters.start is not None:
            conditions.append(_M.requested_at >= as_utc(filters.start))
        if filters.end is not None:
            conditions.append(_M.requested_at <= as_utc(filters.end))
        if filters.request_type is not None:
            conditions.append(
                _M.request_type == ApprovalRequestType(filters.request_type).value
            )
        return conditions
