"""
Module: approval_kernel.db.types
Responsibility: Portable column types shared by every model.
Architecture position: Kernel > DB.  MUST NOT import from models/,
    services/, selectors/ or domain/.

Invariants enforced:
    - Timestamps are always timezone-aware UTC when they leave the DB,
      whatever the dialect.  SQLite drops tzinfo on DATETIME columns;
      UTCDateTime normalizes on the way in and re-attaches UTC on the way
      out, so expiry comparisons against Clock.now() never mix naive and
      aware values.
    - UUIDs are stored as String(36) for cross-database portability.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID stored as its 36-character string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return UUID(value)
        return None


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime, persisted as UTC.

    Naive values are rejected at bind time; every value the kernel writes
    comes from a Clock and is aware.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime not allowed: {value!r}")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to UTC for comparisons in SQL."""
    if value.tzinfo is None:
        raise ValueError(f"naive datetime not allowed: {value!r}")
    return value.astimezone(timezone.utc)
